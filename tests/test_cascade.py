"""
Visibility mirroring and delete cascades.
"""
import pytest

from phantom_pen.core.errors import UnauthorizedError, UserNotFoundError
from phantom_pen.models.capture import Capture
from phantom_pen.models.narrative_entry import NarrativeEntry
from phantom_pen.models.synthesis_schedule import SynthesisSchedule
from phantom_pen.models.user import User
from phantom_pen.models.voice_upload import UploadStatus, VoiceUpload
from phantom_pen.schemas.narrative import NarrativeDraft
from phantom_pen.services import captures as capture_service
from phantom_pen.services import users as user_service
from phantom_pen.services.captures import (
    CreateCaptureCommand,
    SetVisibilityCommand,
    UpdateTranscriptCommand,
)


def _with_entries(db, scheduler, runner, generator, owner_id, n=3):
    capture = capture_service.create_capture(
        db, scheduler, owner_id, CreateCaptureCommand(title="Trip", transcript="We drove north.")
    )
    generator.next_drafts = [
        NarrativeDraft(date="01 Jun 1990", title=f"Part {i}", content=f"Chapter {i}.")
        for i in range(n)
    ]
    runner.advance(7.5)
    return capture


def _entry_flags(db, capture_id):
    db.expire_all()
    return [
        e.is_public
        for e in db.query(NarrativeEntry).filter(NarrativeEntry.capture_id == capture_id).all()
    ]


class TestVisibilityMirroring:
    def test_private_then_public(self, db, scheduler, runner, generator, owner_id, user):
        capture = _with_entries(db, scheduler, runner, generator, owner_id)
        assert _entry_flags(db, capture.id) == [True, True, True]

        capture_service.set_visibility(
            db, SetVisibilityCommand(capture_id=capture.id, is_public=False), owner_id
        )
        assert _entry_flags(db, capture.id) == [False, False, False]

        capture_service.set_visibility(
            db, SetVisibilityCommand(capture_id=capture.id, is_public=True), owner_id
        )
        assert _entry_flags(db, capture.id) == [True, True, True]

    def test_toggle(self, db, scheduler, runner, generator, owner_id, user):
        capture = _with_entries(db, scheduler, runner, generator, owner_id, n=2)
        toggled = capture_service.toggle_visibility(db, capture.id, owner_id)
        assert toggled.is_public is False
        assert _entry_flags(db, capture.id) == [False, False]

    def test_visibility_edit_bumps_updated_at_only(
        self, db, scheduler, runner, generator, owner_id, user
    ):
        capture = _with_entries(db, scheduler, runner, generator, owner_id, n=1)
        before_updated = capture.updated_at
        before_revision = capture.content_revision

        changed = capture_service.set_visibility(
            db, SetVisibilityCommand(capture_id=capture.id, is_public=False), owner_id
        )
        assert changed.updated_at > before_updated
        assert changed.content_revision == before_revision
        assert runner.pending() == 0

    def test_non_owner_cannot_change_visibility(
        self, db, scheduler, runner, generator, owner_id, user
    ):
        capture = _with_entries(db, scheduler, runner, generator, owner_id, n=1)
        with pytest.raises(UnauthorizedError):
            capture_service.set_visibility(
                db, SetVisibilityCommand(capture_id=capture.id, is_public=False), "intruder"
            )
        assert _entry_flags(db, capture.id) == [True]


class TestCaptureDelete:
    def test_delete_removes_entries_schedule_and_cancels_job(
        self, db, scheduler, runner, generator, owner_id, user
    ):
        capture = _with_entries(db, scheduler, runner, generator, owner_id, n=3)
        capture_service.update_transcript(
            db, scheduler,
            UpdateTranscriptCommand(capture_id=capture.id, transcript="We drove further north."),
            owner_id,
        )
        pending_handle = (
            db.query(SynthesisSchedule).filter(SynthesisSchedule.capture_id == capture.id).one()
        ).job_handle
        capture_id = capture.id

        capture_service.delete_capture(db, scheduler, capture_id, owner_id)

        db.expire_all()
        assert db.query(NarrativeEntry).filter(NarrativeEntry.capture_id == capture_id).count() == 0
        assert (
            db.query(SynthesisSchedule).filter(SynthesisSchedule.capture_id == capture_id).count()
            == 0
        )
        assert db.get(Capture, capture_id) is None
        assert pending_handle in runner.cancelled
        assert runner.pending() == 0

    def test_delete_detaches_voice_uploads(self, db, scheduler, owner_id):
        capture = capture_service.create_blank_capture(db, owner_id)
        db.add(VoiceUpload(
            owner_id=owner_id, capture_id=capture.id,
            blob_handle="a" * 32, status=UploadStatus.completed,
        ))
        db.commit()
        capture_id = capture.id

        capture_service.delete_capture(db, scheduler, capture_id, owner_id)
        db.expire_all()
        upload = db.query(VoiceUpload).filter(VoiceUpload.owner_id == owner_id).one()
        assert upload.capture_id is None

    def test_non_owner_cannot_delete(self, db, scheduler, owner_id):
        capture = capture_service.create_blank_capture(db, owner_id)
        with pytest.raises(UnauthorizedError):
            capture_service.delete_capture(db, scheduler, capture.id, "intruder")
        db.expire_all()
        assert db.get(Capture, capture.id) is not None


class TestUserDelete:
    def test_delete_user_removes_everything_owned(
        self, db, scheduler, runner, generator, owner_id, user
    ):
        first = _with_entries(db, scheduler, runner, generator, owner_id, n=2)
        capture_service.create_capture(
            db, scheduler, owner_id, CreateCaptureCommand(title="Pending", transcript="Not yet.")
        )
        db.add(VoiceUpload(
            owner_id=owner_id, capture_id=first.id,
            blob_handle="b" * 32, status=UploadStatus.failed,
        ))
        db.commit()

        deleted = user_service.delete_user(db, scheduler, owner_id)
        assert deleted == 2

        db.expire_all()
        assert db.query(Capture).filter(Capture.owner_id == owner_id).count() == 0
        assert db.query(NarrativeEntry).filter(NarrativeEntry.owner_id == owner_id).count() == 0
        assert db.query(SynthesisSchedule).filter(SynthesisSchedule.owner_id == owner_id).count() == 0
        assert db.query(VoiceUpload).filter(VoiceUpload.owner_id == owner_id).count() == 0
        assert db.query(User).filter(User.external_id == owner_id).count() == 0
        assert runner.pending() == 0

    def test_delete_unknown_user(self, db, scheduler):
        with pytest.raises(UserNotFoundError):
            user_service.delete_user(db, scheduler, "ghost")

    def test_other_users_untouched(self, db, scheduler, runner, generator, owner_id, user):
        other_capture = capture_service.create_blank_capture(db, "bystander-" + owner_id)
        user_service.delete_user(db, scheduler, owner_id)
        db.expire_all()
        assert db.get(Capture, other_capture.id) is not None
