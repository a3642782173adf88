"""Import helpers for scripts that aren't packages."""
import importlib.util
import sys
from pathlib import Path

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"

# Add scripts/ to sys.path so the hyphenated CLIs can import lib.*.
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))


def _import_script(name: str, filename: str):
    """Import a script file as a module using importlib."""
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / filename)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


optimize_diff_cli = _import_script("optimize_diff_cli", "optimize-diff.py")
run_review = _import_script("run_review", "run-review.py")
post_review = _import_script("post_review", "post-review.py")
