"""ASGI entrypoint for the field capture API."""

from field_capture.api.app import create_app
from field_capture.containers import build_container

app = create_app(build_container())
