"""ASGI entrypoint for the cleanup API."""

from burnchat.api.app import create_app
from burnchat.containers import build_container

app = create_app(build_container())
