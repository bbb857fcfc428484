from planner.db.core import close_pool, get_pool_stats, init_pool
from planner.db.plans import (
    plans_create,
    plans_delete,
    plans_get_by_slug,
    plans_list_by_creator,
    plans_update_description,
    responses_create,
    responses_delete,
    responses_get,
    responses_list,
)

__all__ = [
    "close_pool",
    "get_pool_stats",
    "init_pool",
    "plans_create",
    "plans_delete",
    "plans_get_by_slug",
    "plans_list_by_creator",
    "plans_update_description",
    "responses_create",
    "responses_delete",
    "responses_get",
    "responses_list",
]
