__version__ = "0.3.0"
__app_name__ = "boxgen"
__app_description__ = "Profile manager and config generator for sing-box"

from boxgen.core import AppContext, get_context, init_context

__all__ = [
    "AppContext",
    "__app_description__",
    "__app_name__",
    "__version__",
    "get_context",
    "init_context",
]
