import re

import pytest

from workout_tracker.exceptions import InvalidCredentialsError, UsernameTakenError, ValidationError
from workout_tracker.schemas.tracker_schemas import Dataset, UserSettings
from workout_tracker.services.profile_store import (
    ACTIVE_PROFILE_KEY,
    PROFILES_KEY,
    ProfileStore,
    build_recovery_export,
    generate_recovery_code,
    parse_recovery_export,
    sha256_digest,
)


def test_register_stores_digests_not_secrets(profile_store, durable_map):
    profile, code = profile_store.register("alice", "pw1")

    assert re.fullmatch(r"[A-HJ-NP-Z2-9]{4}-[A-HJ-NP-Z2-9]{4}-[A-HJ-NP-Z2-9]{4}", code)
    assert profile.dataset == Dataset()
    assert profile.settings == UserSettings()

    raw = durable_map.get(PROFILES_KEY).decode("utf-8")
    assert "pw1" not in raw
    assert code not in raw
    assert sha256_digest("pw1") in raw


def test_register_rejects_case_insensitive_duplicate(profile_store):
    profile_store.register("alice", "pw1")
    with pytest.raises(UsernameTakenError):
        profile_store.register("ALICE", "other")


def test_register_requires_name_and_password(profile_store):
    with pytest.raises(ValidationError):
        profile_store.register("   ", "pw")
    with pytest.raises(ValidationError):
        profile_store.register("bob", "")


def test_authenticate_uses_one_error_for_both_failures(profile_store):
    profile_store.register("alice", "pw1")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        profile_store.authenticate("alice", "nope")
    with pytest.raises(InvalidCredentialsError) as unknown_user:
        profile_store.authenticate("mallory", "pw1")

    assert wrong_password.value.message == unknown_user.value.message
    assert profile_store.authenticate("Alice", "pw1").name == "alice"


def test_reset_password_with_recovery_code(profile_store):
    profile, code = profile_store.register("alice", "pw1")

    assert not profile_store.reset_password("alice", "WRNG-CODE-XXXX", "pw2")
    profile_store.authenticate("alice", "pw1")

    assert profile_store.reset_password("alice", code, "pw2")
    with pytest.raises(InvalidCredentialsError):
        profile_store.authenticate("alice", "pw1")
    assert profile_store.authenticate("alice", "pw2").id == profile.id


def test_recovery_export_round_trip():
    code = generate_recovery_code()
    text = build_recovery_export("alice", code)
    assert parse_recovery_export(text) == ("alice", code)

    with pytest.raises(ValidationError):
        parse_recovery_export("nothing useful here")


def test_update_and_delete(profile_store):
    profile, _ = profile_store.register("alice", "pw1")
    profile_store.set_active_id(profile.id)

    updated = profile_store.update(
        profile.id, lambda p: p.model_copy(update={"settings": UserSettings(default_reps=5)})
    )
    assert updated.settings.default_reps == 5
    assert profile_store.update("missing", lambda p: p) is None

    assert profile_store.delete(profile.id)
    assert profile_store.get(profile.id) is None
    assert profile_store.get_active_id() is None
    assert not profile_store.delete(profile.id)


def test_profiles_survive_a_new_store_on_the_same_map(durable_map):
    first = ProfileStore(durable_map)
    profile, _ = first.register("alice", "pw1")
    first.set_active_id(profile.id)

    second = ProfileStore(durable_map)
    assert [p.name for p in second.list_profiles()] == ["alice"]
    assert second.get_active_id() == profile.id


def test_external_change_reloads_and_notifies(durable_map):
    tab_a = ProfileStore(durable_map)
    tab_b = ProfileStore(durable_map.sibling())
    calls = []
    tab_b.subscribe(lambda: calls.append(True))

    tab_a.register("alice", "pw1")

    assert calls == [True]
    assert tab_b.find_by_name("alice") is not None


def test_legacy_profile_fields_are_accepted(durable_map):
    durable_map.set_json(PROFILES_KEY, [{
        "id": "p1",
        "name": "legacy",
        "passwordHash": sha256_digest("pw"),
        "securityCodeHash": sha256_digest("ABCD-EFGH-JKLM"),
        "appData": {"sessions": [], "healthStats": [{"id": "h1", "bodyweight": 180, "bodyweightUnit": "lbs",
                                                     "timestamp": "2024-01-01T00:00:00Z"}],
                    "routines": []},
        "settings": {"defaultWorkout": "Squats", "sessionTimeout": 30},
    }])
    store = ProfileStore(durable_map)

    profile = store.authenticate("legacy", "pw")
    assert profile.dataset.health_entries[0].bodyweight == 180
    assert profile.settings.default_exercise_name == "Squats"
    assert profile.settings.session_timeout_minutes == 30
    assert store.reset_password("legacy", "ABCD-EFGH-JKLM", "new")


def test_reset_all_clears_map(profile_store, durable_map):
    profile, _ = profile_store.register("alice", "pw1")
    profile_store.set_active_id(profile.id)

    profile_store.reset_all()

    assert profile_store.list_profiles() == []
    assert durable_map.get(PROFILES_KEY) is None
    assert durable_map.get(ACTIVE_PROFILE_KEY) is None
