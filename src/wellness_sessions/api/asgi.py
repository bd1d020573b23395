"""ASGI entrypoint for the wellness sessions API."""

from wellness_sessions.api.app import create_app
from wellness_sessions.containers import build_container

app = create_app(build_container())
