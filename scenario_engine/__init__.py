"""Scenario engine package for the scripted ad-demo chat.

Keeps the scenario catalog, the detection/progression state machine and the
chat session orchestration free of any web framework so they can be
exercised from tests, the CLI and the FastAPI router.
"""

from . import templates, state_machine, conversation  # noqa: F401
