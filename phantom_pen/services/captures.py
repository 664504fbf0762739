"""
Capture store: owner-scoped CRUD for voice notes.

Rules:
- Every write path checks `caller_id == capture.owner_id`.
- db.commit() only at the root function. Cascades (cascade.py) run inside
  the same unit of work as the write that triggers them.
- Synthesis is (re)scheduled *after* the write is committed, for
  content-affecting mutations only (create, transcript update, transcription
  append). Title and visibility edits do not touch the narrative text, so
  they leave the schedule alone.
- A failure to schedule never fails the edit.

Public API
----------
create_capture(db, scheduler, owner_id, cmd)          -> Capture
create_blank_capture(db, owner_id, title)             -> Capture
get_capture(db, capture_id, caller_id)                -> Capture        (raises)
get_public_capture(db, capture_id)                    -> Capture | None
list_captures(db, owner_id, limit)                    -> list[Capture]
search_captures(db, owner_id, query, limit)           -> list[Capture]
update_title(db, cmd, caller_id)                      -> Capture
update_transcript(db, scheduler, cmd, caller_id)      -> Capture
set_visibility(db, cmd, caller_id)                    -> Capture
toggle_visibility(db, capture_id, caller_id)          -> Capture
delete_capture(db, scheduler, capture_id, caller_id)  -> None
append_transcription(db, scheduler, capture_id, caller_id, text) -> Capture
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from phantom_pen.core.errors import CaptureNotFoundError, UnauthorizedError
from phantom_pen.core.logging import get_logger
from phantom_pen.models.capture import BLANK_TRANSCRIPT, Capture
from phantom_pen.services.cascade import cascade_capture_delete, propagate_visibility
from phantom_pen.services.scheduler import SynthesisScheduler
from phantom_pen.services.text import markdown_to_blocks

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass
class CreateCaptureCommand:
    title: str
    transcript: str = ""
    content: Optional[list[dict[str, Any]]] = None


@dataclass
class UpdateTitleCommand:
    capture_id: int
    title: str


@dataclass
class UpdateTranscriptCommand:
    capture_id: int
    transcript: str
    content: Optional[list[dict[str, Any]]] = None


@dataclass
class SetVisibilityCommand:
    capture_id: int
    is_public: bool


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def dump_content(blocks: Optional[list[dict[str, Any]]]) -> Optional[str]:
    if blocks is None:
        return None
    return json.dumps(blocks, ensure_ascii=False)


def load_content(text: Optional[str]) -> list[dict[str, Any]]:
    if not text:
        return []
    try:
        result = json.loads(text)
    except (ValueError, TypeError):
        return []
    return result if isinstance(result, list) else []


def _touch(capture: Capture, content_changed: bool = False) -> None:
    capture.updated_at = _now()
    if content_changed:
        capture.content_revision = (capture.content_revision or 0) + 1


def _load_owned(db: Session, capture_id: int, caller_id: str) -> Capture:
    capture = db.get(Capture, capture_id)
    if capture is None:
        raise CaptureNotFoundError(capture_id)
    if capture.owner_id != caller_id:
        raise UnauthorizedError("capture", capture_id)
    return capture


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def create_capture(
    db: Session,
    scheduler: SynthesisScheduler,
    owner_id: str,
    cmd: CreateCaptureCommand,
) -> Capture:
    now = _now()
    content = cmd.content if cmd.content is not None else markdown_to_blocks(cmd.transcript)
    capture = Capture(
        owner_id=owner_id,
        title=cmd.title,
        transcript=cmd.transcript,
        content=dump_content(content),
        is_public=True,
        content_revision=1,
        created_at=now,
        updated_at=now,
    )
    db.add(capture)
    db.commit()
    db.refresh(capture)
    logger.info("Capture %s created for %s", capture.id, owner_id)

    if capture.transcript.strip():
        scheduler.schedule(db, capture)
        db.refresh(capture)
    return capture


def create_blank_capture(db: Session, owner_id: str, title: str = "Untitled") -> Capture:
    """New note holding the editor placeholder. Nothing to synthesize yet."""
    now = _now()
    capture = Capture(
        owner_id=owner_id,
        title=title,
        transcript=BLANK_TRANSCRIPT,
        content=dump_content([{"type": "paragraph", "content": BLANK_TRANSCRIPT}]),
        is_public=True,
        content_revision=0,
        created_at=now,
        updated_at=now,
    )
    db.add(capture)
    db.commit()
    db.refresh(capture)
    logger.info("Blank capture %s created for %s", capture.id, owner_id)
    return capture


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def get_capture(db: Session, capture_id: int, caller_id: str) -> Capture:
    return _load_owned(db, capture_id, caller_id)


def get_public_capture(db: Session, capture_id: int) -> Optional[Capture]:
    capture = db.get(Capture, capture_id)
    if capture is None or not capture.is_public:
        return None
    return capture


def list_captures(db: Session, owner_id: str, limit: int = 100) -> list[Capture]:
    return (
        db.query(Capture)
        .filter(Capture.owner_id == owner_id)
        .order_by(Capture.updated_at.desc(), Capture.id.desc())
        .limit(limit)
        .all()
    )


def _escape_like(term: str) -> str:
    """Make %, _ and the escape character itself match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_captures(
    db: Session,
    owner_id: str,
    query: Optional[str],
    limit: int = 100,
) -> list[Capture]:
    """Case-insensitive substring match over title or transcript."""
    term = (query or "").strip()
    if not term:
        return list_captures(db, owner_id, limit)
    pattern = f"%{_escape_like(term)}%"
    return (
        db.query(Capture)
        .filter(
            Capture.owner_id == owner_id,
            or_(
                Capture.title.ilike(pattern, escape="\\"),
                Capture.transcript.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(Capture.updated_at.desc(), Capture.id.desc())
        .limit(limit)
        .all()
    )


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

def update_title(db: Session, cmd: UpdateTitleCommand, caller_id: str) -> Capture:
    capture = _load_owned(db, cmd.capture_id, caller_id)
    capture.title = cmd.title
    _touch(capture)
    db.commit()
    db.refresh(capture)
    return capture


def update_transcript(
    db: Session,
    scheduler: SynthesisScheduler,
    cmd: UpdateTranscriptCommand,
    caller_id: str,
) -> Capture:
    capture = _load_owned(db, cmd.capture_id, caller_id)
    capture.transcript = cmd.transcript
    content = cmd.content if cmd.content is not None else markdown_to_blocks(cmd.transcript)
    capture.content = dump_content(content)
    _touch(capture, content_changed=True)
    db.commit()
    db.refresh(capture)
    logger.info("Capture %s transcript updated (rev %d)", capture.id, capture.content_revision)

    scheduler.schedule(db, capture)
    db.refresh(capture)
    return capture


def append_transcription(
    db: Session,
    scheduler: SynthesisScheduler,
    capture_id: int,
    caller_id: str,
    text: str,
) -> Capture:
    """Append one recorded segment: transcript gets "\\n" + text, content gets a paragraph."""
    capture = _load_owned(db, capture_id, caller_id)
    existing = capture.transcript or ""
    capture.transcript = f"{existing}\n{text}" if existing else text
    blocks = load_content(capture.content)
    blocks.append({"type": "paragraph", "content": text})
    capture.content = dump_content(blocks)
    _touch(capture, content_changed=True)
    db.commit()
    db.refresh(capture)
    logger.info("Appended %d characters to capture %s", len(text), capture.id)

    scheduler.schedule(db, capture)
    db.refresh(capture)
    return capture


def set_visibility(db: Session, cmd: SetVisibilityCommand, caller_id: str) -> Capture:
    capture = _load_owned(db, cmd.capture_id, caller_id)
    capture.is_public = cmd.is_public
    _touch(capture)
    propagate_visibility(db, capture)
    db.commit()
    db.refresh(capture)
    return capture


def toggle_visibility(db: Session, capture_id: int, caller_id: str) -> Capture:
    capture = _load_owned(db, capture_id, caller_id)
    return set_visibility(
        db, SetVisibilityCommand(capture_id=capture_id, is_public=not capture.is_public), caller_id
    )


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def delete_capture(
    db: Session,
    scheduler: SynthesisScheduler,
    capture_id: int,
    caller_id: str,
) -> None:
    capture = _load_owned(db, capture_id, caller_id)
    with scheduler.capture_lock(capture_id):
        try:
            cascade_capture_delete(db, capture, scheduler.cancel_job)
            db.commit()
        except Exception:
            db.rollback()
            raise
    scheduler.forget(capture_id)
