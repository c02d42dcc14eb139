import logging

import pytest

from moontv_search.models import SearchResult

# 2025-06-15, far enough from New Year that no timezone changes the year
MID_2025 = 1750000000.0


class FakeClock:
    def __init__(self, now: float = MID_2025):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_result(title, year="2023", source="a", external_id="", id=""):
    return SearchResult(title=title, year=year, source=source, external_id=external_id, id=id)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    pkg_logger = logging.getLogger("moontv_search")
    handlers = list(pkg_logger.handlers)
    yield
    for handler in list(pkg_logger.handlers):
        if handler not in handlers:
            pkg_logger.removeHandler(handler)
            handler.close()
