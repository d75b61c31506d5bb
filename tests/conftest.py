from __future__ import annotations

from pathlib import Path

import pytest

from webglue_mirror.core.models import TargetURL


@pytest.fixture()
def tmp_cache_path(tmp_path: Path) -> Path:
    return tmp_path / "cache.sqlite3"


@pytest.fixture()
def page_target() -> TargetURL:
    return TargetURL.parse("http://example.com/dir/page.html")
