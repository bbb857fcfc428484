from typing import Literal, TypedDict, Union


class ResponseCreatedEvent(TypedDict):
    type: Literal["response_created"]
    slug: str
    response_id: str
    guest_name: str
    timestamp: str


class ResponseDeletedEvent(TypedDict):
    type: Literal["response_deleted"]
    slug: str
    response_id: str
    timestamp: str


class PlanUpdatedEvent(TypedDict):
    type: Literal["plan_updated"]
    slug: str
    timestamp: str


class PlanDeletedEvent(TypedDict):
    type: Literal["plan_deleted"]
    slug: str
    timestamp: str


# Discriminated union of everything published on a plan channel
PlanEvent = Union[ResponseCreatedEvent, ResponseDeletedEvent, PlanUpdatedEvent, PlanDeletedEvent]
