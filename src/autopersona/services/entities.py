"""SQLAlchemy entity store; image files live under the media directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from autopersona.db.tables import (
    CharacterImageRow,
    CharacterRow,
    GeneratedContentRow,
    generate_id,
)
from autopersona.errors import StepError
from autopersona.services.base import (
    CharacterProfile,
    CharacterRecord,
    EntityStore,
    PromptSuggestion,
)

logger = logging.getLogger("autopersona.services.entities")


class SqlEntityStore(EntityStore):
    def __init__(
        self,
        session_factory: sessionmaker,
        media_dir: Path,
        image_format: str = "webp",
    ) -> None:
        self._sessions = session_factory
        self.media_dir = Path(media_dir)
        self.image_format = image_format

    def _session(self) -> Session:
        return self._sessions()

    # -- Characters ------------------------------------------------------------

    def create_character(
        self,
        owner_id: str,
        profile: CharacterProfile,
        tags: list[str],
        is_public: bool = False,
    ) -> str:
        row = CharacterRow(
            owner_id=owner_id,
            name=profile.name,
            description=profile.description,
            category=profile.category,
            personality=dict(profile.personality),
            physical_attributes=dict(profile.physical_attributes),
            tags=list(tags),
            is_public=is_public,
        )
        with self._session() as session, session.begin():
            session.add(row)
            session.flush()
            character_id = row.id
        logger.info("Created character %s (%s)", character_id, profile.name)
        return character_id

    def get_character(self, character_id: str) -> CharacterRecord | None:
        with self._session() as session:
            row = session.get(CharacterRow, character_id)
            if row is None:
                return None
            return CharacterRecord(
                id=row.id,
                owner_id=row.owner_id,
                name=row.name,
                personality=dict(row.personality or {}),
                physical_attributes=dict(row.physical_attributes or {}),
                main_face_image_id=row.main_face_image_id,
            )

    # -- Images ----------------------------------------------------------------

    def attach_image(self, character_id: str, image: bytes, metadata: dict[str, Any]) -> str:
        image_id = generate_id()
        path = self.media_dir / character_id / f"{image_id}.{self.image_format}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image)

        settings = {k: v for k, v in metadata.items() if k not in ("prompt", "face_swapped")}
        with self._session() as session, session.begin():
            if session.get(CharacterRow, character_id) is None:
                path.unlink(missing_ok=True)
                raise StepError(f"Character {character_id} not found")
            session.add(
                CharacterImageRow(
                    id=image_id,
                    character_id=character_id,
                    path=str(path),
                    prompt=str(metadata.get("prompt", "")),
                    face_swapped=bool(metadata.get("face_swapped", False)),
                    settings=settings,
                )
            )
        return image_id

    def set_main_face(self, character_id: str, image_id: str) -> None:
        with self._session() as session, session.begin():
            image = session.get(CharacterImageRow, image_id)
            if image is None or image.character_id != character_id:
                raise StepError(f"Image {image_id} does not belong to character {character_id}")
            session.execute(
                update(CharacterImageRow)
                .where(CharacterImageRow.character_id == character_id)
                .values(is_main_face=CharacterImageRow.id == image_id),
                execution_options={"synchronize_session": False},
            )
            session.execute(
                update(CharacterRow)
                .where(CharacterRow.id == character_id)
                .values(main_face_image_id=image_id, thumbnail=image.path),
                execution_options={"synchronize_session": False},
            )
        logger.debug("Image %s is now the main face of %s", image_id, character_id)

    def image_bytes(self, image_id: str) -> bytes | None:
        with self._session() as session:
            path = session.scalar(select(CharacterImageRow.path).where(CharacterImageRow.id == image_id))
        if path is None:
            return None
        try:
            return Path(path).read_bytes()
        except OSError:
            logger.warning("Image file for %s is missing: %s", image_id, path)
            return None

    # -- Generated content -----------------------------------------------------

    def create_content(
        self,
        owner_id: str,
        character_id: str,
        schedule_id: str | None,
        suggestion: PromptSuggestion,
        content_type: str,
    ) -> str:
        row = GeneratedContentRow(
            owner_id=owner_id,
            character_id=character_id,
            schedule_id=schedule_id,
            original_prompt=suggestion.prompt,
            enhanced_prompt=suggestion.prompt,
            caption=suggestion.caption,
            hashtags=list(suggestion.hashtags),
            ai_suggestions={
                "mood": suggestion.mood,
                "setting": suggestion.setting,
                "reasoning": suggestion.reasoning,
            },
            content_type=content_type,
            status="generating",
        )
        with self._session() as session, session.begin():
            session.add(row)
            session.flush()
            return row.id

    def finish_content(
        self,
        content_id: str,
        image_id: str | None,
        status: str,
        post_id: str | None = None,
    ) -> None:
        values: dict[str, Any] = {"image_id": image_id, "status": status}
        if post_id is not None:
            values["post_id"] = post_id
        with self._session() as session, session.begin():
            session.execute(
                update(GeneratedContentRow)
                .where(GeneratedContentRow.id == content_id)
                .values(**values),
                execution_options={"synchronize_session": False},
            )

    def recent_prompts(self, character_id: str, limit: int = 10) -> list[str]:
        """Newest prompts used for a character, oldest first."""
        stmt = (
            select(GeneratedContentRow.original_prompt)
            .where(GeneratedContentRow.character_id == character_id)
            .order_by(GeneratedContentRow.created_at.desc())
            .limit(limit)
        )
        with self._session() as session:
            prompts = [p for p in session.scalars(stmt) if p]
        return list(reversed(prompts))
