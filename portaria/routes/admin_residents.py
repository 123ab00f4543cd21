from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from portaria import models
from portaria.dependencies import get_directory, require_admin
from portaria.directory import ResidentDirectory
from portaria.errors import PortariaError

router = APIRouter(prefix="/admin/residents", tags=["admin"])


class ResidentCreate(BaseModel):
    apartment_number: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    resident_name: str | None = None
    notes: str | None = None


class ResidentUpdate(BaseModel):
    phone_number: str | None = Field(default=None, min_length=1)
    resident_name: str | None = None
    notes: str | None = None
    is_active: bool | None = None


def serialize(resident: models.Resident) -> dict:
    return {
        "apartment_number": resident.apartment_number,
        "phone_number": resident.phone_number,
        "resident_name": resident.resident_name,
        "notes": resident.notes,
        "is_active": resident.is_active,
    }


@router.get("")
def list_residents(
    include_inactive: bool = False,
    directory: ResidentDirectory = Depends(get_directory),
    user: models.User = Depends(require_admin),
):
    return [serialize(resident) for resident in directory.list(include_inactive=include_inactive)]


@router.post("", status_code=201)
def create_resident(
    payload: ResidentCreate,
    directory: ResidentDirectory = Depends(get_directory),
    user: models.User = Depends(require_admin),
):
    try:
        resident = directory.add(
            payload.apartment_number.strip(),
            payload.phone_number,
            resident_name=payload.resident_name,
            notes=payload.notes,
        )
    except PortariaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return serialize(resident)


@router.patch("/{apartment_number}")
def update_resident(
    apartment_number: str,
    payload: ResidentUpdate,
    directory: ResidentDirectory = Depends(get_directory),
    user: models.User = Depends(require_admin),
):
    try:
        resident = directory.update(apartment_number, **payload.model_dump())
    except PortariaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return serialize(resident)


@router.delete("/{apartment_number}", status_code=204)
def delete_resident(
    apartment_number: str,
    directory: ResidentDirectory = Depends(get_directory),
    user: models.User = Depends(require_admin),
):
    try:
        directory.remove(apartment_number)
    except PortariaError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
