"""Top-level package for the OMBEA session toolkit.

Provides subpackages:
- ombea_toolkit.generator – builds the polling presentation and delivery archive
- ombea_toolkit.importer – reads response sessions back into graded results
- ombea_toolkit.core – shared models and schema validation
- ombea_toolkit.cli – command line front end
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text(encoding="utf-8")
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    try:
        from importlib.metadata import version as pkg_version
        return pkg_version("ombea_toolkit")
    except Exception:
        return "0.0.0"

__version__ = _get_version()
