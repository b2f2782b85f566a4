"""Token verification against Firebase Authentication."""

import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from auth import InvalidToken

logger = logging.getLogger(__name__)

APP_NAME = "styledecor"


class FirebaseVerifier:
    def __init__(self, credentials_path: Optional[str] = None, app: Optional[firebase_admin.App] = None):
        if app is None:
            app = firebase_admin.initialize_app(credentials.Certificate(credentials_path), name=APP_NAME)
            logger.info("Firebase app initialised from %s", credentials_path)
        self.app = app

    def verify(self, token: str) -> Dict[str, Any]:
        # Every failure, network errors included, is a rejection.
        try:
            return firebase_auth.verify_id_token(token, app=self.app)
        except Exception as exc:
            logger.warning("Firebase token rejected: %s", exc)
            raise InvalidToken(str(exc)) from exc
