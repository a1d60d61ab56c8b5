# clinic_crm/routers/social.py
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..scheduling.calendar import CalendarPost, build_month_grid, posts_for_day
from .appointments import raise_for_crud_error

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/social",
    tags=["Social Calendar"],
    responses={404: {"description": "Not found"}},
)


@router.get("/projects", response_model=List[schemas.SocialProjectResponse])
def read_social_projects(db: Session = Depends(get_db)):
    return crud.get_social_projects(db)


@router.post("/projects", response_model=schemas.SocialProjectResponse, status_code=status.HTTP_201_CREATED)
def create_social_project(social_project: schemas.SocialProjectCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_social_project(db, social_project)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.get("/projects/{social_project_id}/posts", response_model=List[schemas.SocialPostResponse])
def read_posts(
    social_project_id: int,
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
):
    """Posts of a calendar, ordered by scheduled date; `year`+`month` restrict to one month."""
    if crud.get_social_project(db, social_project_id) is None:
        raise HTTPException(status_code=404, detail="Social project not found")
    return crud.get_posts(db, social_project_id, year=year, month=month)


@router.get("/projects/{social_project_id}/calendar", response_model=schemas.CalendarMonthResponse)
def read_calendar_month(
    social_project_id: int,
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    if crud.get_social_project(db, social_project_id) is None:
        raise HTTPException(status_code=404, detail="Social project not found")
    posts = crud.get_posts(db, social_project_id, year=year, month=month)
    calendar_posts = [CalendarPost.from_orm(p) for p in posts]
    cells = [
        {"day": day, "post_ids": [p.id for p in posts_for_day(calendar_posts, year, month, day)] if day else []}
        for day in build_month_grid(year, month)
    ]
    return {
        "year": year,
        "month": month,
        "cells": cells,
        "posts": [schemas.SocialPostResponse.model_validate(p) for p in posts],
    }


@router.post("/projects/{social_project_id}/posts", response_model=schemas.SocialPostResponse, status_code=status.HTTP_201_CREATED)
def create_post(social_project_id: int, post: schemas.SocialPostCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_post(db, social_project_id, post)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.get("/posts/{post_id}", response_model=schemas.SocialPostResponse)
def read_post(post_id: int, db: Session = Depends(get_db)):
    db_post = crud.get_post(db, post_id)
    if db_post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return db_post


@router.put("/posts/{post_id}", response_model=schemas.SocialPostResponse)
def update_post(post_id: int, post_update: schemas.SocialPostUpdate, db: Session = Depends(get_db)):
    try:
        db_post = crud.update_post(db, post_id, post_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return db_post


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: int, db: Session = Depends(get_db)):
    if not crud.delete_post(db, post_id):
        raise HTTPException(status_code=404, detail="Post not found")


@router.post("/posts/{post_id}/reschedule", response_model=schemas.SocialPostResponse)
def reschedule_post(post_id: int, request: schemas.PostRescheduleRequest, db: Session = Depends(get_db)):
    """Calendar drop target: move the post to `target_date`, keeping the fixed drop time."""
    result = crud.reschedule_post(db, post_id, request.target_date)
    if not result.ok:
        logger.warning("post_reschedule_failed", post_id=post_id, error=result.error)
        if crud.get_post(db, post_id) is None:
            raise HTTPException(status_code=404, detail="Post not found")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.error)
    logger.info("post_rescheduled", post_id=post_id, scheduled_date=result.scheduled_date.isoformat())
    return crud.get_post(db, post_id)
