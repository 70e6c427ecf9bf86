import math
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import AfterValidator

from auth import get_current_user
from errors import NotFoundError
from models import Question, Quiz, utcnow
from rate_limiter import api_limit, create_limit
from schemas import QuizCreate, QuizUpdate, ListParams, check_object_id, list_params

router = APIRouter()

QuizId = Annotated[str, AfterValidator(check_object_id)]

UPCOMING_LIMIT = 5


def get_quiz_or_404(quiz_id: str) -> Quiz:
    quiz = Quiz.objects(id=quiz_id).first()
    if not quiz:
        raise NotFoundError("Quiz")
    return quiz


@router.get("")
@api_limit
def list_quizzes(
    request: Request,
    current_user: dict = Depends(get_current_user),
    params: ListParams = Depends(list_params),
    type: Optional[str] = None,
    is_active: Optional[str] = Query(None, alias="isActive"),
):
    query = {}
    if type:
        query["type"] = type
    if is_active is not None:
        query["is_active"] = is_active == "true"
    if params.course:
        query["course"] = params.course

    quizzes = Quiz.objects(**query)
    total = quizzes.count()
    page = (quizzes
            .order_by(params.ordering("due_date"))
            .skip(params.skip)
            .limit(params.limit))

    return {
        "success": True,
        "data": [q.to_dict() for q in page],
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "pages": math.ceil(total / params.limit),
        },
    }


@router.get("/upcoming")
@api_limit
def upcoming_quizzes(
    request: Request,
    current_user: dict = Depends(get_current_user),
    params: ListParams = Depends(list_params),
):
    quizzes = (Quiz.objects(due_date__gte=utcnow(), is_active=True)
               .order_by("due_date")
               .limit(UPCOMING_LIMIT))
    return {"success": True, "data": [q.to_dict() for q in quizzes]}


@router.get("/{quiz_id}")
@api_limit
def get_quiz(
    request: Request,
    quiz_id: QuizId,
    current_user: dict = Depends(get_current_user),
):
    quiz = get_quiz_or_404(quiz_id)
    return {"success": True, "data": quiz.to_dict()}


@router.post("", status_code=201)
@create_limit
@api_limit
def create_quiz(
    request: Request,
    payload: QuizCreate,
    current_user: dict = Depends(get_current_user),
):
    data = payload.model_dump(exclude_none=True)
    data["questions"] = [Question(**q) for q in data["questions"]]
    quiz = Quiz(**data)
    quiz.save()
    return {
        "success": True,
        "data": quiz.to_dict(),
        "message": "Quiz created successfully",
    }


@router.put("/{quiz_id}")
@api_limit
def update_quiz(
    request: Request,
    quiz_id: QuizId,
    payload: QuizUpdate,
    current_user: dict = Depends(get_current_user),
):
    quiz = get_quiz_or_404(quiz_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "questions" in changes:
        changes["questions"] = [Question(**q) for q in changes["questions"]]
    for field, value in changes.items():
        setattr(quiz, field, value)
    quiz.save()
    return {
        "success": True,
        "data": quiz.to_dict(),
        "message": "Quiz updated successfully",
    }


@router.delete("/{quiz_id}")
@api_limit
def delete_quiz(
    request: Request,
    quiz_id: QuizId,
    current_user: dict = Depends(get_current_user),
):
    quiz = get_quiz_or_404(quiz_id)
    quiz.delete()
    return {"success": True, "message": "Quiz deleted successfully"}
