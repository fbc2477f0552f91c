"""
Common utilities package for the TaskFlow application.

`app.utils.logger` is imported by the configuration module itself, so this
package init must stay free of imports that read settings (such as
`app.utils.auth`); import those submodules directly.
"""

from app.utils.logger import setup_logger

__all__ = ["setup_logger"]
