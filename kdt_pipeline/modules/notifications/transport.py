import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError


logger = logging.getLogger(__name__)


class PushTransportError(Exception):
    pass


class PushTransport(ABC):
    @abstractmethod
    async def send(self, token: str, title: str, data: str) -> str:
        pass


class FirebasePushTransport(PushTransport):
    APP_NAME = "kdt-notifications"

    def __init__(self, app: firebase_admin.App) -> None:
        self.app = app

    @classmethod
    def from_credentials(cls, credentials_path: Optional[str]) -> "FirebasePushTransport":
        if not credentials_path:
            raise ValueError("FIREBASE_CFG is not set")
        app = firebase_admin.initialize_app(
            credentials.Certificate(credentials_path),
            name=cls.APP_NAME,
        )
        logger.info("Firebase connected")
        return cls(app)

    async def send(self, token: str, title: str, data: str) -> str:
        message = messaging.Message(
            token=token,
            data={
                "title": title,
                "content": data,
            },
        )
        try:
            # messaging.send блокирующий
            return await asyncio.to_thread(messaging.send, message, app=self.app)
        except (FirebaseError, ValueError) as exc:
            raise PushTransportError(str(exc)) from exc
