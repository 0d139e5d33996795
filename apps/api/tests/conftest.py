from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="sprouttrack-tests-"))

os.environ["SPROUT_DATABASE_PATH"] = str(_TMP_DIR / "baby-tracker.db")
os.environ["SPROUT_JWT_SECRET"] = "sprouttrack-test-signing-secret-0123456789abcdef"
os.environ["SPROUT_CHANGELOG_PATH"] = str(_TMP_DIR / "CHANGELOG.md")
