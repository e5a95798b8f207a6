"""
Profile Store
Local (offline) profiles kept in the durable map: registration, credential
checks, password reset via recovery code, updates and deletion.
"""

import hashlib
import re
import secrets
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from workout_tracker.core.logger import get_logger
from workout_tracker.exceptions import InvalidCredentialsError, UsernameTakenError, ValidationError
from workout_tracker.schemas.tracker_schemas import Dataset, Profile, UserSettings
from workout_tracker.services.durable_map import DurableMap

logger = get_logger("profile_store")

PROFILES_KEY = "workoutTrackerProfiles"
ACTIVE_PROFILE_KEY = "activeLocalProfileId"

# No 0/O, 1/I/L: the code is meant to be copied by hand
RECOVERY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
RECOVERY_CODE_LENGTH = 12

DigestFunction = Callable[[str], str]
ProfilesListener = Callable[[], None]


def sha256_digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_recovery_code() -> str:
    raw = "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))
    return f"{raw[0:4]}-{raw[4:8]}-{raw[8:12]}"


def build_recovery_export(username: str, code: str) -> str:
    """Plain-text backup of the recovery code, offered once at registration."""
    return (
        "Workout Tracker - Account Recovery Code\n\n"
        f"Username: {username}\n"
        f"Security Code: {code}\n\n"
        "Please store this file in a safe place. You will need this code to "
        "reset your password if you forget it."
    )


def parse_recovery_export(content: str) -> Tuple[str, str]:
    """Read (username, code) back out of a recovery export."""
    username_match = re.search(r"Username: (.*)", content)
    code_match = re.search(r"Security Code: (.*)", content)
    if not username_match or not code_match:
        raise ValidationError("Could not find username and security code in the recovery file.")
    return username_match.group(1).strip(), code_match.group(1).strip()


class ProfileStore:
    """
    Profiles live under one durable-map key as a JSON list; the active
    profile id lives under another. The in-memory copy is reloaded wholesale
    whenever another tab writes either key.
    """

    def __init__(self, durable_map: DurableMap, digest: DigestFunction = sha256_digest):
        self.durable_map = durable_map
        self.digest = digest
        self._listeners: List[ProfilesListener] = []
        self._profiles: List[Profile] = self._load()
        self._unsubscribe = durable_map.subscribe(self._on_external_change)

    # ── Persistence ─────────────────────────────────────────────────────────

    def _load(self) -> List[Profile]:
        raw_profiles = self.durable_map.get_json(PROFILES_KEY, default=[]) or []
        profiles = []
        for raw in raw_profiles:
            try:
                profiles.append(Profile.model_validate(raw))
            except PydanticValidationError as e:
                logger.error(f"Skipping unreadable stored profile: {e}")
        return profiles

    def _save(self) -> None:
        self.durable_map.set_json(PROFILES_KEY, [p.to_document() for p in self._profiles])

    def _on_external_change(self, key: Optional[str]) -> None:
        if key not in (None, PROFILES_KEY, ACTIVE_PROFILE_KEY):
            return
        logger.info(f"Reloading profiles after external change to {key or 'all keys'}")
        self._profiles = self._load()
        for listener in list(self._listeners):
            listener()

    def subscribe(self, listener: ProfilesListener) -> Callable[[], None]:
        """Called after the profile list or active pointer was replaced by another tab."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def close(self) -> None:
        self._unsubscribe()

    # ── Queries ─────────────────────────────────────────────────────────────

    def list_profiles(self) -> List[Profile]:
        return list(self._profiles)

    def get(self, profile_id: str) -> Optional[Profile]:
        return next((p for p in self._profiles if p.id == profile_id), None)

    def find_by_name(self, username: str) -> Optional[Profile]:
        wanted = username.strip().lower()
        return next((p for p in self._profiles if p.name.lower() == wanted), None)

    # ── Operations ──────────────────────────────────────────────────────────

    def register(self, username: str, password: str) -> Tuple[Profile, str]:
        """
        Create a profile with an empty dataset and default settings.
        Returns the profile and the plaintext recovery code, which is not kept.
        """
        name = username.strip()
        if not name or not password:
            raise ValidationError("Username and password are required.")
        if self.find_by_name(name):
            raise UsernameTakenError()

        recovery_code = generate_recovery_code()
        profile = Profile(
            name=name,
            password_digest=self.digest(password),
            recovery_code_digest=self.digest(recovery_code),
            dataset=Dataset(),
            settings=UserSettings(),
        )
        self._profiles.append(profile)
        self._save()
        logger.info(f"Registered local profile {profile.id} ({profile.name})")
        return profile, recovery_code

    def authenticate(self, username: str, password: str) -> Profile:
        profile = self.find_by_name(username)
        if not profile or not profile.password_digest:
            raise InvalidCredentialsError()
        if not secrets.compare_digest(self.digest(password), profile.password_digest):
            raise InvalidCredentialsError()
        return profile

    def reset_password(self, username: str, recovery_code: str, new_password: str) -> bool:
        profile = self.find_by_name(username)
        if not profile or not profile.recovery_code_digest or not new_password:
            return False
        if not secrets.compare_digest(self.digest(recovery_code.strip()), profile.recovery_code_digest):
            logger.warning(f"Rejected recovery code for profile {profile.id}")
            return False

        new_digest = self.digest(new_password)
        self.update(profile.id, lambda p: p.model_copy(update={"password_digest": new_digest}))
        logger.info(f"Password reset for profile {profile.id}")
        return True

    def update(self, profile_id: str, updater: Callable[[Profile], Profile]) -> Optional[Profile]:
        for index, profile in enumerate(self._profiles):
            if profile.id == profile_id:
                updated = updater(profile)
                self._profiles[index] = updated
                self._save()
                return updated
        return None

    def delete(self, profile_id: str) -> bool:
        remaining = [p for p in self._profiles if p.id != profile_id]
        if len(remaining) == len(self._profiles):
            return False
        self._profiles = remaining
        self._save()
        if self.get_active_id() == profile_id:
            self.set_active_id(None)
        logger.info(f"Deleted local profile {profile_id}")
        return True

    def reset_all(self) -> None:
        """Full application reset: every profile and pointer is dropped."""
        self.durable_map.clear()
        self._profiles = []
        logger.warning("Application data reset; all local profiles removed")

    # ── Active profile pointer ──────────────────────────────────────────────

    def get_active_id(self) -> Optional[str]:
        active_id = self.durable_map.get_json(ACTIVE_PROFILE_KEY)
        return active_id if isinstance(active_id, str) else None

    def set_active_id(self, profile_id: Optional[str]) -> None:
        if profile_id is None:
            self.durable_map.delete(ACTIVE_PROFILE_KEY)
        else:
            self.durable_map.set_json(ACTIVE_PROFILE_KEY, profile_id)
