"""Pytest hooks and fixtures."""

import os

import pytest


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "network: talks to a real Moodle site (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip network tests when running in CI (no site to talk to)."""
    if os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires a live Moodle site (skipped in CI)")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip)


class FakeSite:
    """Plays the batched AJAX endpoint: answers each call by methodname."""

    def __init__(self, handlers=None):
        self.handlers = dict(handlers or {})
        self.batches: list[list[dict]] = []

    @property
    def calls(self) -> list[dict]:
        return [call for batch in self.batches for call in batch]

    def methods(self) -> list[str]:
        return [call["methodname"] for call in self.calls]

    async def post(self, payload, *, info, login_required=True):
        self.batches.append(payload)
        responses = []
        for call in payload:
            handler = self.handlers.get(call["methodname"])
            if handler is None:
                responses.append({
                    "error": True,
                    "exception": {"message": f"unknown method {call['methodname']}", "errorcode": "servicenotavailable"},
                })
                continue
            try:
                data = handler(call["args"])
            except Exception as exc:
                responses.append({"error": True, "exception": {"message": str(exc), "errorcode": "codingerror"}})
            else:
                responses.append({"error": False, "data": data})
        return responses


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()
