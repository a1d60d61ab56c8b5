# clinic_crm/routers/crm.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from .appointments import raise_for_crud_error

router = APIRouter(
    tags=["CRM"],
    responses={404: {"description": "Not found"}},
)


# ==================== Companies ====================

@router.get("/companies", response_model=List[schemas.CompanyResponse])
def read_companies(search: Optional[str] = None, skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return crud.get_companies(db, search=search, skip=skip, limit=limit)


@router.post("/companies", response_model=schemas.CompanyResponse, status_code=status.HTTP_201_CREATED)
def create_company(company: schemas.CompanyCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_company(db, company)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.get("/companies/{company_id}", response_model=schemas.CompanyResponse)
def read_company(company_id: int, db: Session = Depends(get_db)):
    db_company = crud.get_company(db, company_id)
    if db_company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return db_company


@router.put("/companies/{company_id}", response_model=schemas.CompanyResponse)
def update_company(company_id: int, company_update: schemas.CompanyUpdate, db: Session = Depends(get_db)):
    try:
        db_company = crud.update_company(db, company_id, company_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return db_company


@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(company_id: int, db: Session = Depends(get_db)):
    if not crud.delete_company(db, company_id):
        raise HTTPException(status_code=404, detail="Company not found")


# ==================== Contacts ====================

@router.get("/companies/{company_id}/contacts", response_model=List[schemas.ContactResponse])
def read_company_contacts(company_id: int, db: Session = Depends(get_db)):
    """Contacts of a company, primary contact first."""
    if crud.get_company(db, company_id) is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return crud.get_contacts_for_company(db, company_id)


@router.post("/companies/{company_id}/contacts", response_model=schemas.ContactResponse, status_code=status.HTTP_201_CREATED)
def create_contact(company_id: int, contact: schemas.ContactCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_contact(db, company_id, contact)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.put("/contacts/{contact_id}", response_model=schemas.ContactResponse)
def update_contact(contact_id: int, contact_update: schemas.ContactUpdate, db: Session = Depends(get_db)):
    try:
        db_contact = crud.update_contact(db, contact_id, contact_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return db_contact


@router.delete("/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(contact_id: int, db: Session = Depends(get_db)):
    if not crud.delete_contact(db, contact_id):
        raise HTTPException(status_code=404, detail="Contact not found")


# ==================== Projects ====================

@router.get("/projects", response_model=List[schemas.ProjectResponse])
def read_projects(company_id: Optional[int] = None, db: Session = Depends(get_db)):
    return crud.get_projects(db, company_id=company_id)


@router.post("/projects", response_model=schemas.ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(project: schemas.ProjectCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_project(db, project)
    except crud.CRUDError as e:
        raise_for_crud_error(e)


@router.get("/projects/{project_id}", response_model=schemas.ProjectResponse)
def read_project(project_id: int, db: Session = Depends(get_db)):
    db_project = crud.get_project(db, project_id)
    if db_project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return db_project


@router.put("/projects/{project_id}", response_model=schemas.ProjectResponse)
def update_project(project_id: int, project_update: schemas.ProjectUpdate, db: Session = Depends(get_db)):
    try:
        db_project = crud.update_project(db, project_id, project_update)
    except crud.CRUDError as e:
        raise_for_crud_error(e)
    if db_project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return db_project


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: int, db: Session = Depends(get_db)):
    if not crud.delete_project(db, project_id):
        raise HTTPException(status_code=404, detail="Project not found")
