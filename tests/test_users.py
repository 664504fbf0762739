"""
Users: sign-in upsert, style profile, onboarding and the public memoir switch.
"""
from datetime import datetime, timezone

import pytest

from phantom_pen.core.errors import MemoirsNotPublicError, UserNotFoundError
from phantom_pen.models.narrative_entry import NarrativeEntry
from phantom_pen.schemas.user import StyleProfile, StyleProfileUpdate
from phantom_pen.services import narratives as narrative_service
from phantom_pen.services import users as user_service


def _profile(**overrides):
    data = dict(
        opener="For my grandchildren",
        feeling_intent="Grateful",
        voice_style="reflection-focused",
        writing_style="clean-simple",
        candor_level="fully-candid",
        humor_style="background-humor",
    )
    data.update(overrides)
    return StyleProfileUpdate(**data)


class TestUpsert:
    def test_creates_on_first_sign_in(self, db, owner_id):
        user = user_service.upsert_user(db, owner_id, email="a@example.com", first_name="Ada")
        assert user.id > 0
        assert user.external_id == owner_id
        assert user.onboarding_completed is False
        assert user.is_memoir_public is True

    def test_refreshes_contact_fields(self, db, owner_id):
        first = user_service.upsert_user(db, owner_id, email="old@example.com")
        second = user_service.upsert_user(db, owner_id, email="new@example.com", last_name="Lovelace")
        assert second.id == first.id
        assert second.email == "new@example.com"
        assert second.last_name == "Lovelace"

    def test_get_unknown(self, db):
        with pytest.raises(UserNotFoundError):
            user_service.get_user(db, "nobody")


class TestStyleProfile:
    def test_update_is_readable_as_style(self, db, user, owner_id):
        updated = user_service.update_style_profile(db, owner_id, _profile())
        style = StyleProfile.model_validate(updated)
        assert style.voice_style == "reflection-focused"
        assert style.writing_style == "clean-simple"
        assert style.opener == "For my grandchildren"

    def test_unknown_choice_is_rejected(self):
        with pytest.raises(ValueError):
            _profile(humor_style="slapstick")

    def test_fresh_user_has_empty_style(self, user):
        style = StyleProfile.model_validate(user)
        assert style.voice_style is None
        assert style.feeling_intent is None

    def test_complete_onboarding(self, db, user, owner_id):
        assert user_service.complete_onboarding(db, owner_id).onboarding_completed is True

    def test_missing_user(self, db):
        with pytest.raises(UserNotFoundError):
            user_service.update_style_profile(db, "nobody", _profile())


class TestMemoirPrivacy:
    def _entry(self, db, owner_id, is_public):
        from phantom_pen.models.capture import Capture

        capture = Capture(owner_id=owner_id, title="T", transcript="x", is_public=is_public)
        db.add(capture)
        db.flush()
        db.add(NarrativeEntry(
            capture_id=capture.id, owner_id=owner_id, date="01 Jan 2020",
            title="T", content="C", is_public=is_public, generated_at=datetime.now(timezone.utc),
        ))
        db.commit()

    def test_public_page_lists_public_entries_only(self, db, user, owner_id):
        self._entry(db, owner_id, True)
        self._entry(db, owner_id, False)
        entries = narrative_service.list_public_entries(db, owner_id)
        assert len(entries) == 1
        assert entries[0].is_public is True

    def test_private_memoir_is_refused(self, db, user, owner_id):
        toggled = user_service.toggle_memoir_privacy(db, owner_id)
        assert toggled.is_memoir_public is False
        with pytest.raises(MemoirsNotPublicError):
            narrative_service.list_public_entries(db, owner_id)

        assert user_service.toggle_memoir_privacy(db, owner_id).is_memoir_public is True

    def test_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            narrative_service.list_public_entries(db, "nobody")
