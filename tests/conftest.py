"""
Test configuration shared by every vestlock test package
"""
import os
import sys
from pathlib import Path

from hypothesis import HealthCheck, settings

# Add src to Python path so tests run without an editable install
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

settings.register_profile("ci", max_examples=500, deadline=None, suppress_health_check=[HealthCheck.too_slow])
settings.register_profile("dev", deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))
