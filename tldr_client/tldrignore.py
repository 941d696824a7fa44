"""TLDR ignore rules (.tldrignore) on the client side.

Edit hooks call notify for every touched file. Files the daemon would never
index (dependencies, build output, secrets) are filtered here with the same
gitignore-style rules, using the pathspec library, so they never reach the
socket.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathspec import PathSpec

# Applied when the project has no .tldrignore of its own; mirrors the
# daemon's generated template.
DEFAULT_PATTERNS = """\
node_modules/
.venv/
venv/
env/
__pycache__/
.tox/
.nox/
.pytest_cache/
.mypy_cache/
.ruff_cache/
vendor/
Pods/
dist/
build/
out/
target/
*.egg-info/
*.whl
*.pyc
*.pyo
*.so
*.dylib
*.dll
*.exe
*.bin
*.o
*.a
*.lib
.idea/
.vscode/
*.swp
*.swo
*~
.env
.env.*
*.pem
*.key
*.p12
*.pfx
credentials.*
secrets.*
.git/
.hg/
.svn/
.DS_Store
Thumbs.db
.tldr/
"""


def load_ignore_patterns(project_dir: str | Path) -> "PathSpec":
    """Load ignore patterns from .tldrignore file.

    Args:
        project_dir: Root directory of the project

    Returns:
        PathSpec matcher; built from DEFAULT_PATTERNS when the file is
        missing or unreadable
    """
    import pathspec

    tldrignore_path = Path(project_dir) / ".tldrignore"

    try:
        patterns = tldrignore_path.read_text().splitlines()
    except (OSError, UnicodeDecodeError):
        patterns = DEFAULT_PATTERNS.splitlines()

    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def should_ignore(
    file_path: str | Path,
    project_dir: str | Path,
    spec: "PathSpec | None" = None,
) -> bool:
    """Check if a file should be ignored.

    Args:
        file_path: Path to check (absolute or relative to project_dir)
        project_dir: Root directory of the project
        spec: Optional pre-loaded PathSpec

    Returns:
        True if the file matches an ignore pattern
    """
    if spec is None:
        spec = load_ignore_patterns(project_dir)

    project_path = Path(project_dir)
    file_path = Path(file_path)

    try:
        rel_path = file_path.relative_to(project_path)
    except ValueError:
        # Not under project_dir, match as given
        rel_path = file_path

    return spec.match_file(rel_path.as_posix())
