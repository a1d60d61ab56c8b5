# clinic_crm/routers/catalog.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from .appointments import raise_for_crud_error

router = APIRouter(
    prefix="/catalog",
    tags=["Services Catalog"],
    responses={404: {"description": "Not found"}},
)


# --- Categories ---

@router.get("/categories", response_model=List[schemas.ServiceCategoryResponse])
def read_categories(db: Session = Depends(get_db)):
    return crud.get_categories(db)


@router.post("/categories", response_model=schemas.ServiceCategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(category: schemas.ServiceCategoryCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_category(db, category)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.put("/categories/{category_id}", response_model=schemas.ServiceCategoryResponse)
def update_category(category_id: int, category_update: schemas.ServiceCategoryUpdate, db: Session = Depends(get_db)):
    try:
        db_category = crud.update_category(db, category_id, category_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return db_category


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_category(db, category_id)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Category not found")


# --- Services ---

@router.get("/services", response_model=List[schemas.ServiceResponse])
def read_services(category_id: Optional[int] = None, active_only: bool = False, db: Session = Depends(get_db)):
    return crud.get_services(db, category_id=category_id, active_only=active_only)


@router.post("/services", response_model=schemas.ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(service: schemas.ServiceCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_service(db, service)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.put("/services/{service_id}", response_model=schemas.ServiceResponse)
def update_service(service_id: int, service_update: schemas.ServiceUpdate, db: Session = Depends(get_db)):
    try:
        db_service = crud.update_service(db, service_id, service_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    return db_service


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(service_id: int, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_service(db, service_id)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Service not found")


# --- Groups ---

@router.get("/groups", response_model=List[schemas.ServiceGroupResponse])
def read_groups(db: Session = Depends(get_db)):
    return crud.get_groups(db)


@router.post("/groups", response_model=schemas.ServiceGroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(group: schemas.ServiceGroupCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_group(db, group)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.put("/groups/{group_id}", response_model=schemas.ServiceGroupResponse)
def update_group(group_id: int, group_update: schemas.ServiceGroupUpdate, db: Session = Depends(get_db)):
    try:
        db_group = crud.update_group(db, group_id, group_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return db_group


@router.delete("/groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(group_id: int, db: Session = Depends(get_db)):
    if not crud.delete_group(db, group_id):
        raise HTTPException(status_code=404, detail="Group not found")


@router.get("/groups/{group_id}/pricing", response_model=schemas.GroupPricingResponse)
def read_group_pricing(group_id: int, db: Session = Depends(get_db)):
    db_group = crud.get_group(db, group_id)
    if db_group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    pricing = crud.price_group(db_group)
    return {
        "group_id": group_id,
        "original_total": pricing.original_total,
        "total": pricing.total,
        "total_quantity": pricing.total_quantity,
        "has_discount": pricing.has_discount,
    }
