"""
Gallery Service
A member's photos and videos. Rows only; the files live in Supabase Storage
and are uploaded by the client.

The primary image is mirrored to `profiles.profile_image_url`, which is what
discovery cards show.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...db.models import UserGallery, User
from ..config import APISettings, get_settings
from ..errors import InvalidRequestError, ResourceNotFoundError
from .profiles import ProfileService

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("image", "video")


def serialize_gallery_item(item: UserGallery) -> Dict[str, Any]:
    return {
        "id": str(item.id),
        "media_url": item.media_url,
        "media_type": item.media_type,
        "is_primary": bool(item.is_primary),
        "display_order": item.display_order,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }


class GalleryService:
    def __init__(self, db: Session, settings: Optional[APISettings] = None):
        self.db = db
        self.profiles = ProfileService(db, settings or get_settings())

    def list_items(self, user: User) -> List[UserGallery]:
        return (
            self.db.query(UserGallery)
            .filter(UserGallery.user_id == user.id)
            .order_by(UserGallery.display_order, UserGallery.created_at)
            .all()
        )

    def _get_owned(self, user: User, gallery_id: UUID) -> UserGallery:
        item = (
            self.db.query(UserGallery)
            .filter(UserGallery.id == gallery_id, UserGallery.user_id == user.id)
            .first()
        )
        if item is None:
            raise ResourceNotFoundError("Gallery item", gallery_id)
        return item

    def _set_primary(self, user: User, item: Optional[UserGallery]) -> None:
        """Make `item` the only primary row and mirror it to the profile."""
        for other in self.list_items(user):
            other.is_primary = item is not None and other.id == item.id
        profile = self.profiles.get_or_create_profile(user)
        profile.profile_image_url = item.media_url if item is not None else None

    def _finish(self, user: User) -> None:
        self.db.flush()
        profile = self.profiles.get_or_create_profile(user)
        self.profiles.refresh_completion(user, profile)
        self.db.commit()

    def add_item(self, user: User, media_url: str, media_type: str = "image") -> UserGallery:
        """
        Record an uploaded file at the end of the gallery.

        The first image becomes the primary photo.
        """
        if media_type not in MEDIA_TYPES:
            raise InvalidRequestError(f"Invalid media_type: {media_type}")

        last = (
            self.db.query(func.max(UserGallery.display_order))
            .filter(UserGallery.user_id == user.id)
            .scalar()
        )
        item = UserGallery(
            user_id=user.id,
            media_url=media_url,
            media_type=media_type,
            display_order=0 if last is None else last + 1,
        )
        self.db.add(item)
        self.db.flush()

        has_primary = (
            self.db.query(UserGallery.id)
            .filter(UserGallery.user_id == user.id, UserGallery.is_primary.is_(True))
            .first()
            is not None
        )
        if media_type == "image" and not has_primary:
            self._set_primary(user, item)

        self._finish(user)
        self.db.refresh(item)
        logger.info(f"Gallery item {item.id} ({media_type}) added for {user.id}")
        return item

    def update_items(self, user: User, order: Iterable[Dict[str, Any]] = (),
                     primary_id: Optional[UUID] = None) -> List[UserGallery]:
        """Apply new display positions and/or a new primary image."""
        for entry in order:
            self._get_owned(user, entry["id"]).display_order = entry["display_order"]

        if primary_id is not None:
            item = self._get_owned(user, primary_id)
            if item.media_type != "image":
                raise InvalidRequestError("Only images can be the primary photo")
            self._set_primary(user, item)

        self._finish(user)
        return self.list_items(user)

    def delete_item(self, user: User, gallery_id: UUID) -> None:
        """Remove a row; when it was primary the next image takes over."""
        item = self._get_owned(user, gallery_id)
        was_primary = bool(item.is_primary)
        self.db.delete(item)
        self.db.flush()

        if was_primary:
            replacement = (
                self.db.query(UserGallery)
                .filter(UserGallery.user_id == user.id, UserGallery.media_type == "image")
                .order_by(UserGallery.display_order, UserGallery.created_at)
                .first()
            )
            self._set_primary(user, replacement)

        self._finish(user)
        logger.info(f"Gallery item {gallery_id} deleted for {user.id}")
