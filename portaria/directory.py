from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portaria import models
from portaria.errors import DuplicateApartment, ResidentInactive, ResidentNotFound
from portaria.phone import normalize_phone

logger = logging.getLogger(__name__)


class ResidentDirectory:
    """Apartment to resident contact mapping."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, apartment_number: str) -> models.Resident | None:
        return (
            self.db.query(models.Resident)
            .filter(models.Resident.apartment_number == apartment_number)
            .first()
        )

    def lookup(self, apartment_number: str) -> models.Resident:
        resident = self.find(apartment_number)
        if not resident:
            raise ResidentNotFound(apartment_number)
        if not resident.is_active:
            raise ResidentInactive(apartment_number)
        return resident

    def list(self, include_inactive: bool = False) -> list[models.Resident]:
        query = self.db.query(models.Resident)
        if not include_inactive:
            query = query.filter(models.Resident.is_active.is_(True))
        return query.order_by(models.Resident.apartment_number).all()

    def add(
        self,
        apartment_number: str,
        phone_number: str,
        resident_name: str | None = None,
        notes: str | None = None,
    ) -> models.Resident:
        if self.find(apartment_number):
            raise DuplicateApartment(apartment_number)

        resident = models.Resident(
            apartment_number=apartment_number,
            phone_number=normalize_phone(phone_number),
            resident_name=resident_name,
            notes=notes,
            is_active=True,
        )
        self.db.add(resident)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateApartment(apartment_number) from exc
        logger.info("Registered resident for apartment %s", apartment_number)
        return resident

    def update(
        self,
        apartment_number: str,
        phone_number: str | None = None,
        resident_name: str | None = None,
        notes: str | None = None,
        is_active: bool | None = None,
    ) -> models.Resident:
        resident = self.find(apartment_number)
        if not resident:
            raise ResidentNotFound(apartment_number)

        if phone_number is not None:
            resident.phone_number = normalize_phone(phone_number)
        if resident_name is not None:
            resident.resident_name = resident_name
        if notes is not None:
            resident.notes = notes
        if is_active is not None:
            resident.is_active = is_active
        self.db.commit()
        return resident

    def remove(self, apartment_number: str) -> None:
        resident = self.find(apartment_number)
        if not resident:
            raise ResidentNotFound(apartment_number)
        self.db.delete(resident)
        self.db.commit()
        logger.info("Removed resident for apartment %s", apartment_number)
