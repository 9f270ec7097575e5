"""
Push notifications through Firebase Cloud Messaging (firebase-admin SDK)
"""
import logging
from typing import Dict, Any, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from core.config import settings

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "lms-push"

# Errors FCM returns for tokens that will never work again
INVALID_TOKEN_ERRORS = (messaging.UnregisteredError, firebase_exceptions.InvalidArgumentError)


def service_account_from_settings() -> Optional[Any]:
    """
    Service-account credentials: a JSON key file, or the individual FIREBASE_* values.
    None when neither is configured.
    """
    if settings.FIREBASE_CREDENTIALS_FILE:
        return settings.FIREBASE_CREDENTIALS_FILE
    if settings.FIREBASE_PROJECT_ID and settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PRIVATE_KEY:
        return {
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            # Keys pasted into .env usually carry literal \n sequences
            "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    return None


class PushService:
    """Sends one multicast FCM message to a list of device tokens"""

    def __init__(self, service_account: Any = None):
        self.service_account = service_account if service_account is not None else service_account_from_settings()
        self._app = None

    def is_configured(self) -> bool:
        return bool(self.service_account)

    def get_app(self) -> firebase_admin.App:
        """Initialize the Firebase app on first use"""
        if self._app is None:
            try:
                self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
            except ValueError:
                cred = credentials.Certificate(self.service_account)
                self._app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
                logger.info("Firebase Admin initialized")
        return self._app

    def send(self, tokens: List[str], title: str, body: str, data: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Returns:
            {"success": n, "failure": n, "invalidTokens": [...]}

        Raises:
            firebase_admin.exceptions.FirebaseError: when the whole batch fails (callers retry)
        """
        if not tokens:
            return {"success": 0, "failure": 0, "invalidTokens": []}

        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            # FCM data payload values must be strings
            data={k: str(v) for k, v in (data or {}).items()},
        )
        response = messaging.send_each_for_multicast(message, app=self.get_app())

        invalid = []
        for token, item in zip(tokens, response.responses):
            if item.success:
                continue
            if isinstance(item.exception, INVALID_TOKEN_ERRORS):
                invalid.append(token)
            else:
                logger.warning(f"Push to token {token[:12]}... failed: {item.exception}")

        logger.info(f"Push sent: {response.success_count} ok, {response.failure_count} failed")
        return {
            "success": response.success_count,
            "failure": response.failure_count,
            "invalidTokens": invalid,
        }


# Global service instance
push_service = PushService()
