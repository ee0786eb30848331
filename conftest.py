"""Root conftest — runs before any test module imports."""

import os

# Rich colours CLI output when FORCE_COLOR is set (as on CI runners), which
# breaks plain-substring assertions on CliRunner output.
os.environ.pop("FORCE_COLOR", None)
os.environ["NO_COLOR"] = "1"

# Environment overrides from a developer shell must not leak into config tests.
for _name in [name for name in os.environ if name.startswith("TIL_")]:
    os.environ.pop(_name)
