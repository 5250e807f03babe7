"""
YAML field rewriting for files about to be published.
"""

from treesync.core.transform.service import (
    TransformError,
    TransformResult,
    find_scalar,
    find_yaml_files,
    render_scalar,
    rewrite_field,
    rewrite_file,
)

__all__ = [
    "TransformError",
    "TransformResult",
    "find_scalar",
    "find_yaml_files",
    "render_scalar",
    "rewrite_field",
    "rewrite_file",
]
