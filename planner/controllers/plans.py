import logging
from datetime import UTC, datetime

import psycopg
from fastapi import APIRouter, Depends, Query

from planner import db
from planner.availability import (
    BLOCKS_PER_DAY,
    DayHeatmap,
    aggregate_blocks,
    aggregate_days,
    compare_responses,
    days_with_time_responses,
    guest_entries_for_day,
)
from planner.config import get_settings
from planner.dependencies import CurrentUser, Identity, OptionalBus, require_database
from planner.errors import BadRequestError, DatabaseError, ForbiddenError, NotFoundError
from planner.models.plans import (
    BlockDetailResponse,
    ComparedPersonOut,
    ComparisonDayOut,
    ComparisonResponse,
    CreatePlanRequest,
    DayHeat,
    DayHeatmapResponse,
    GuestResponse,
    OkResponse,
    Plan,
    PlansListResponse,
    PlanSummary,
    PublicPlan,
    ResultsResponse,
    SubmitResponseRequest,
    TimeBlockHeat,
    TimeHeatmapResponse,
    UpdatePlanRequest,
)
from planner.timewindows import day_key, format_hour_tick, format_windows_label, from_minutes

logger = logging.getLogger("planner.plans")
router = APIRouter(prefix="/plans", tags=["plans"], dependencies=[Depends(require_database)])

HOUR_TICKS = [format_hour_tick(h) for h in range(0, 25, 3)]


def _now() -> str:
    return datetime.now(UTC).isoformat()


async def _load_plan(slug: str) -> Plan:
    row = await db.plans_get_by_slug(slug)
    if not row:
        logger.warning("Plan not found: %s", slug)
        raise NotFoundError(detail="Plan not found", slug=slug)
    return Plan(**row)


async def _load_owned_plan(slug: str, user: Identity) -> Plan:
    plan = await _load_plan(slug)
    if plan.creator_id != user.user_id:
        logger.warning("User %s is not the owner of plan %s", user.user_id, slug)
        raise ForbiddenError()
    return plan


async def _load_responses(plan: Plan) -> list[GuestResponse]:
    return [GuestResponse(**r) for r in await db.responses_list(plan.id)]


def _resolve_day(plan: Plan, day: str) -> str:
    try:
        key = day_key(day)
    except ValueError:
        raise NotFoundError(detail=f"Invalid day: {day}") from None
    if not plan.start_date <= key <= plan.end_date:
        raise NotFoundError(detail=f"Day {key} is outside the plan range")
    return key


def _check_submission(plan: Plan, req: SubmitResponseRequest) -> None:
    outside = [d for d in req.selected_dates if not plan.start_date <= d <= plan.end_date]
    if outside:
        raise BadRequestError(detail="Selected dates are outside the plan range", dates=outside)
    if plan.mode.narrows_dates:
        offered = set(plan.available_dates)
        not_offered = [d for d in req.selected_dates if d not in offered]
        if not_offered:
            raise BadRequestError(detail="Selected dates are not offered by this plan", dates=not_offered)
    if plan.mode.uses_time_windows:
        windows = req.selected_time_windows or {}
        missing = [d for d in req.selected_dates if not windows.get(d)]
        if missing:
            raise BadRequestError(detail="Time windows are required for this plan type", dates=missing)
        stray = [k for k in windows if k not in req.selected_dates]
        if stray:
            raise BadRequestError(detail="Time windows given for dates that were not selected", dates=stray)


def _day_heatmap(heatmap: DayHeatmap) -> DayHeatmapResponse:
    return DayHeatmapResponse(
        max_count=heatmap.max_count,
        days=[
            DayHeat(date=d.key, count=d.count, names=list(d.names), tier=heatmap.tier(d))
            for d in heatmap.days
        ],
    )


def _time_heatmap(plan: Plan, key: str, responses: list[GuestResponse]) -> TimeHeatmapResponse:
    planner_windows = plan.planner_windows(key)
    heatmap = aggregate_blocks(planner_windows, guest_entries_for_day(responses, key))
    return TimeHeatmapResponse(
        date=key,
        planner_windows=planner_windows,
        planner_label=format_windows_label(planner_windows),
        max_count=heatmap.max_count,
        hour_ticks=HOUR_TICKS,
        blocks=[
            TimeBlockHeat(
                index=b.index,
                start=from_minutes(b.start_minute),
                end=from_minutes(b.end_minute),
                label=b.label,
                count=b.count,
                names=list(b.names),
                tier=heatmap.tier(b),
                in_planner_window=b.in_planner_window,
            )
            for b in heatmap.blocks
        ],
    )


def _require_time_mode(plan: Plan) -> None:
    if not plan.mode.uses_time_windows:
        raise BadRequestError(detail="This plan does not collect time windows", mode=plan.mode.value)


@router.get("", response_model=PlansListResponse)
async def list_plans(user: CurrentUser) -> PlansListResponse:
    plans = await db.plans_list_by_creator(user.user_id)
    logger.info("GET /plans user=%s plans=%d", user.user_id, len(plans))
    return PlansListResponse(plans=[PlanSummary(**p) for p in plans])


@router.post("", response_model=Plan, status_code=201)
async def create_plan(req: CreatePlanRequest, user: CurrentUser) -> Plan:
    logger.info(
        "POST /plans name=%s mode=%s range=%s..%s user=%s",
        req.name, req.mode.value, req.start_date, req.end_date, user.user_id,
    )
    try:
        plan = await db.plans_create(
            name=req.name,
            description=req.description,
            start_date=req.start_date,
            end_date=req.end_date,
            mode=req.mode.value,
            available_dates=req.available_dates,
            time_windows=(
                {k: [w.model_dump() for w in ws] for k, ws in req.time_windows.items()}
                if req.time_windows is not None
                else None
            ),
            desired_duration=req.desired_duration,
            creator_id=user.user_id,
            creator_name=user.display_name,
            slug_length=get_settings().plans.slug_length,
        )
    except (psycopg.Error, RuntimeError) as e:
        logger.exception("Failed to create plan")
        raise DatabaseError(detail="Failed to create plan") from e
    logger.info("Created plan id=%s slug=%s", plan["id"], plan["slug"])
    return Plan(**plan)


@router.get("/{slug}", response_model=PublicPlan)
async def get_plan(slug: str) -> PublicPlan:
    logger.info("GET /plans/%s", slug)
    plan = await _load_plan(slug)
    return PublicPlan(**plan.model_dump())


@router.patch("/{slug}", response_model=Plan)
async def update_plan(slug: str, req: UpdatePlanRequest, user: CurrentUser, bus: OptionalBus) -> Plan:
    logger.info("PATCH /plans/%s user=%s", slug, user.user_id)
    plan = await _load_owned_plan(slug, user)
    try:
        updated = await db.plans_update_description(plan.id, req.description)
    except psycopg.Error as e:
        logger.exception("Failed to update plan %s", slug)
        raise DatabaseError(detail="Failed to update plan") from e
    if not updated:
        raise NotFoundError(detail="Plan not found", slug=slug)
    if bus is not None:
        await bus.try_publish({"type": "plan_updated", "slug": slug, "timestamp": _now()})
    return Plan(**updated)


@router.delete("/{slug}", response_model=OkResponse)
async def delete_plan(slug: str, user: CurrentUser, bus: OptionalBus) -> OkResponse:
    logger.info("DELETE /plans/%s user=%s", slug, user.user_id)
    plan = await _load_owned_plan(slug, user)
    try:
        await db.plans_delete(plan.id)
    except psycopg.Error as e:
        logger.exception("Failed to delete plan %s", slug)
        raise DatabaseError(detail="Failed to delete plan") from e
    logger.info("Deleted plan id=%s slug=%s", plan.id, slug)
    if bus is not None:
        await bus.try_publish({"type": "plan_deleted", "slug": slug, "timestamp": _now()})
    return OkResponse()


@router.post("/{slug}/respond", response_model=GuestResponse, status_code=201)
async def submit_response(slug: str, req: SubmitResponseRequest, bus: OptionalBus) -> GuestResponse:
    logger.info(
        "POST /plans/%s/respond guest=%s dates=%d", slug, req.guest_name, len(req.selected_dates)
    )
    plan = await _load_plan(slug)
    _check_submission(plan, req)
    windows = None
    if plan.mode.uses_time_windows and req.selected_time_windows:
        windows = {k: [w.model_dump() for w in ws] for k, ws in req.selected_time_windows.items()}
    try:
        response = await db.responses_create(
            plan_id=plan.id,
            guest_name=req.guest_name,
            selected_dates=req.selected_dates,
            comment=req.comment,
            selected_time_windows=windows,
        )
    except psycopg.Error as e:
        logger.exception("Failed to store response for plan %s", slug)
        raise DatabaseError(detail="Failed to store response") from e
    logger.info("Stored response id=%s for plan %s", response["id"], slug)
    if bus is not None:
        await bus.try_publish({
            "type": "response_created",
            "slug": slug,
            "response_id": response["id"],
            "guest_name": req.guest_name,
            "timestamp": _now(),
        })
    return GuestResponse(**response)


@router.get("/{slug}/results", response_model=ResultsResponse)
async def get_results(slug: str, user: CurrentUser) -> ResultsResponse:
    logger.info("GET /plans/%s/results user=%s", slug, user.user_id)
    plan = await _load_owned_plan(slug, user)
    responses = await _load_responses(plan)
    heatmap = aggregate_days(plan.start, plan.end, responses)
    time_heatmaps = []
    if plan.mode.uses_time_windows and plan.time_windows:
        time_heatmaps = [
            _time_heatmap(plan, day.isoformat(), responses)
            for day in days_with_time_responses(plan.start, plan.end, responses)
        ]
    logger.info(
        "Returning results for %s with %d responses and %d time heatmaps",
        slug, len(responses), len(time_heatmaps),
    )
    return ResultsResponse(
        plan=plan,
        share_url=get_settings().plans.share_url(plan.slug),
        responses=responses,
        heatmap=_day_heatmap(heatmap),
        time_heatmaps=time_heatmaps,
    )


@router.get("/{slug}/results/days/{day}", response_model=TimeHeatmapResponse)
async def get_day_heatmap(slug: str, day: str, user: CurrentUser) -> TimeHeatmapResponse:
    logger.info("GET /plans/%s/results/days/%s user=%s", slug, day, user.user_id)
    plan = await _load_owned_plan(slug, user)
    _require_time_mode(plan)
    key = _resolve_day(plan, day)
    return _time_heatmap(plan, key, await _load_responses(plan))


@router.get("/{slug}/results/days/{day}/blocks/{index}", response_model=BlockDetailResponse)
async def get_block_detail(slug: str, day: str, index: int, user: CurrentUser) -> BlockDetailResponse:
    logger.info("GET /plans/%s/results/days/%s/blocks/%d user=%s", slug, day, index, user.user_id)
    plan = await _load_owned_plan(slug, user)
    _require_time_mode(plan)
    key = _resolve_day(plan, day)
    if not 0 <= index < BLOCKS_PER_DAY:
        raise NotFoundError(detail=f"Block index must be between 0 and {BLOCKS_PER_DAY - 1}")
    responses = await _load_responses(plan)
    heatmap = aggregate_blocks(plan.planner_windows(key), guest_entries_for_day(responses, key))
    block = heatmap.lookup(index)
    return BlockDetailResponse(
        date=key,
        index=index,
        label=block.label,
        count=block.count,
        names=list(block.names),
        summary=block.summary,
    )


@router.get("/{slug}/results/compare", response_model=ComparisonResponse)
async def compare(
    slug: str,
    user: CurrentUser,
    response_id: list[str] | None = Query(None, description="Responses to compare, in display order"),
) -> ComparisonResponse:
    requested = list(dict.fromkeys(response_id or []))
    logger.info("GET /plans/%s/results/compare user=%s ids=%d", slug, user.user_id, len(requested))
    plan = await _load_owned_plan(slug, user)
    if len(requested) < 2:
        raise BadRequestError(detail="Select at least two responses to compare")
    by_id = {r.id: r for r in await _load_responses(plan)}
    unknown = [rid for rid in requested if rid not in by_id]
    if unknown:
        raise NotFoundError(detail="Response not found", response_ids=unknown)
    people, days = compare_responses(plan.start, plan.end, [by_id[rid] for rid in requested])
    return ComparisonResponse(
        people=[
            ComparedPersonOut(response_id=p.response_id, name=p.name, color_index=p.color_index)
            for p in people
        ],
        days=[
            ComparisonDayOut(
                date=d.day.isoformat(),
                people=[
                    ComparedPersonOut(response_id=p.response_id, name=p.name, color_index=p.color_index)
                    for p in d.people
                ],
            )
            for d in days
        ],
    )


@router.delete("/{slug}/responses/{response_id}", response_model=OkResponse)
async def delete_response(slug: str, response_id: str, user: CurrentUser, bus: OptionalBus) -> OkResponse:
    logger.info("DELETE /plans/%s/responses/%s user=%s", slug, response_id, user.user_id)
    plan = await _load_owned_plan(slug, user)
    response = await db.responses_get(response_id)
    if not response or response["plan_id"] != plan.id:
        logger.warning("Response %s not found on plan %s", response_id, slug)
        raise NotFoundError(detail="Response not found", response_id=response_id)
    try:
        await db.responses_delete(response_id)
    except psycopg.Error as e:
        logger.exception("Failed to delete response %s", response_id)
        raise DatabaseError(detail="Failed to delete response") from e
    if bus is not None:
        await bus.try_publish({
            "type": "response_deleted",
            "slug": slug,
            "response_id": response_id,
            "timestamp": _now(),
        })
    return OkResponse()
