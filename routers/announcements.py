import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import AfterValidator

from auth import get_current_user, identity_user_id
from errors import NotFoundError
from models import Announcement, Author
from rate_limiter import api_limit, create_limit
from schemas import (AnnouncementCreate, AnnouncementUpdate, ListParams,
                     check_object_id, list_params)

router = APIRouter()

AnnouncementId = Annotated[str, AfterValidator(check_object_id)]


def _author(data: dict) -> Author:
    return Author(**{k: v for k, v in data.items() if v is not None})


def get_announcement_or_404(announcement_id: str) -> Announcement:
    announcement = Announcement.objects(id=announcement_id).first()
    if not announcement:
        raise NotFoundError("Announcement")
    return announcement


@router.get("")
@api_limit
def list_announcements(
    request: Request,
    current_user: dict = Depends(get_current_user),
    params: ListParams = Depends(list_params),
    priority: Optional[str] = None,
    is_active: Optional[str] = Query(None, alias="isActive"),
):
    query = {}
    if priority:
        query["priority"] = priority
    if is_active is not None:
        query["is_active"] = is_active == "true"
    if params.course:
        query["course"] = params.course

    announcements = Announcement.objects(**query)
    total = announcements.count()
    page = (announcements
            .order_by(params.ordering("-created_at"))
            .skip(params.skip)
            .limit(params.limit))

    return {
        "success": True,
        "data": [a.to_dict() for a in page],
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "pages": math.ceil(total / params.limit),
        },
    }


@router.get("/{announcement_id}")
@api_limit
def get_announcement(
    request: Request,
    announcement_id: AnnouncementId,
    current_user: dict = Depends(get_current_user),
):
    announcement = get_announcement_or_404(announcement_id)
    return {"success": True, "data": announcement.to_dict()}


@router.post("", status_code=201)
@create_limit
@api_limit
def create_announcement(
    request: Request,
    payload: AnnouncementCreate,
    current_user: dict = Depends(get_current_user),
):
    data = payload.model_dump(exclude_none=True)
    data["author"] = _author(data["author"])
    announcement = Announcement(**data, created_by=identity_user_id(current_user))
    announcement.save()
    return {
        "success": True,
        "data": announcement.to_dict(),
        "message": "Announcement created successfully",
    }


@router.put("/{announcement_id}")
@api_limit
def update_announcement(
    request: Request,
    announcement_id: AnnouncementId,
    payload: AnnouncementUpdate,
    current_user: dict = Depends(get_current_user),
):
    announcement = get_announcement_or_404(announcement_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "author" in changes:
        changes["author"] = _author(changes["author"])
    for field, value in changes.items():
        setattr(announcement, field, value)
    announcement.save()
    return {
        "success": True,
        "data": announcement.to_dict(),
        "message": "Announcement updated successfully",
    }


@router.delete("/{announcement_id}")
@api_limit
def delete_announcement(
    request: Request,
    announcement_id: AnnouncementId,
    current_user: dict = Depends(get_current_user),
):
    announcement = get_announcement_or_404(announcement_id)
    announcement.delete()
    return {"success": True, "message": "Announcement deleted successfully"}
