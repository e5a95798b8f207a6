"""
Profile Controller
Local profiles: register, log in/out, password reset, deletion and app reset.
"""
from workout_tracker.core.logger import get_logger
from workout_tracker.exceptions import AuthError
from workout_tracker.schemas.api_schemas import (
    AppStateResponse,
    CredentialsRequest,
    MessageResponse,
    PasswordResetRequest,
    ProfileSummary,
    RegisterResponse,
)
from workout_tracker.services.profile_store import build_recovery_export, parse_recovery_export
from workout_tracker.services.tracker_service import (
    CloudAccountMode,
    LocalProfileMode,
    TrackerService,
)

logger = get_logger("profile_controller")


class ProfileController:

    @staticmethod
    def app_state(tracker: TrackerService) -> AppStateResponse:
        profile = tracker.active_profile
        mode = tracker.mode
        if isinstance(mode, LocalProfileMode):
            mode_name = "local"
        elif isinstance(mode, CloudAccountMode):
            mode_name = "cloud"
        else:
            mode_name = "unauthenticated"

        return AppStateResponse(
            mode=mode_name,
            profile=ProfileSummary(id=profile.id, name=profile.name) if profile else None,
            account=mode.account if isinstance(mode, CloudAccountMode) else None,
            dataset=tracker.dataset,
            settings=tracker.settings,
            session_state=tracker.sessions.state,
            active_session=tracker.sessions.active_session,
            sync_status=tracker.sync_status,
        )

    @staticmethod
    def list_profiles(tracker: TrackerService) -> list:
        return [ProfileSummary(id=p.id, name=p.name) for p in tracker.profile_store.list_profiles()]

    @staticmethod
    def register(tracker: TrackerService, payload: CredentialsRequest) -> RegisterResponse:
        profile, recovery_code = tracker.register(payload.username, payload.password)
        return RegisterResponse(
            profile=ProfileSummary(id=profile.id, name=profile.name),
            recovery_code=recovery_code,
            recovery_export=build_recovery_export(profile.name, recovery_code),
        )

    @staticmethod
    def login(tracker: TrackerService, payload: CredentialsRequest) -> AppStateResponse:
        tracker.login_local(payload.username, payload.password)
        return ProfileController.app_state(tracker)

    @staticmethod
    def logout(tracker: TrackerService) -> AppStateResponse:
        tracker.logout()
        return ProfileController.app_state(tracker)

    @staticmethod
    def reset_password(tracker: TrackerService, payload: PasswordResetRequest) -> MessageResponse:
        if payload.recovery_export:
            username, code = parse_recovery_export(payload.recovery_export)
        else:
            username, code = payload.username, payload.recovery_code

        if not tracker.reset_password(username, code, payload.new_password):
            raise AuthError("Invalid username or security code.")
        return MessageResponse(message="Password has been reset. You can now log in.")

    @staticmethod
    def delete_active_profile(tracker: TrackerService) -> AppStateResponse:
        tracker.delete_active_profile()
        return ProfileController.app_state(tracker)

    @staticmethod
    def reset_app(tracker: TrackerService) -> MessageResponse:
        tracker.reset_app()
        logger.warning("Application reset requested over HTTP")
        return MessageResponse(message="All application data has been deleted.")
