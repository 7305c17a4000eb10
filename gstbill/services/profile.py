from __future__ import annotations

import logging
import mimetypes
from datetime import datetime
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from gstbill.config import Settings, load_settings
from gstbill.data import IssuerProfileRecord, get_session
from gstbill.errors import PersistenceError
from gstbill.models import IssuerProfile


logger = logging.getLogger(__name__)

_ALLOWED_SIGNATURE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/bmp"}


def default_issuer_profile(settings: Settings | None = None) -> IssuerProfile:
    settings = settings or load_settings()
    return IssuerProfile(
        name=settings.issuer_name,
        gstin=settings.issuer_gstin,
        contact=settings.issuer_contact,
        deals_in=settings.issuer_deals_in,
        address=settings.issuer_address,
        signatory_name=settings.signatory_name,
    )


def _to_profile(record: IssuerProfileRecord) -> IssuerProfile:
    return IssuerProfile(
        name=record.name,
        gstin=record.gstin,
        contact=record.contact,
        deals_in=record.deals_in,
        address=record.address,
        signatory_name=record.signatory_name,
        signature_image=record.signature_image,
    )


def load_issuer_profile(settings: Settings | None = None) -> IssuerProfile:
    """Stored profile, or the configured defaults when none has been saved yet."""
    try:
        with get_session() as session:
            record = session.exec(select(IssuerProfileRecord).order_by(IssuerProfileRecord.id)).first()
    except SQLAlchemyError as exc:
        logger.exception("profile.load_failed")
        raise PersistenceError(f"Could not load issuer profile: {exc}") from exc

    if record is None:
        return default_issuer_profile(settings)
    return _to_profile(record)


def save_issuer_profile(profile: IssuerProfile) -> IssuerProfile:
    try:
        with get_session() as session:
            with session.begin():
                record = session.exec(select(IssuerProfileRecord).order_by(IssuerProfileRecord.id)).first()
                if record is None:
                    record = IssuerProfileRecord()
                record.name = profile.name
                record.gstin = profile.gstin
                record.contact = profile.contact
                record.deals_in = profile.deals_in
                record.address = profile.address
                record.signatory_name = profile.signatory_name
                record.signature_image = profile.signature_image
                record.updated_at = datetime.now().isoformat()
                session.add(record)
    except SQLAlchemyError as exc:
        logger.exception("profile.save_failed")
        raise PersistenceError(f"Could not save issuer profile: {exc}") from exc

    logger.info("profile.saved name=%s signature=%s", profile.name, profile.signature_image is not None)
    return profile


def read_signature_image(path: str | Path) -> bytes:
    """Signature upload: image files only, returned as-is."""
    path = Path(path)
    mime, _ = mimetypes.guess_type(path.name)
    if mime not in _ALLOWED_SIGNATURE_TYPES:
        raise ValueError(f"Please select an image file, got {path.name!r}.")
    return path.read_bytes()
