"""
Bwaincell - interaction middleware for a personal-productivity Discord bot.

Every inbound interaction (slash command, modal submit, button or select
click) passes through an ordered middleware chain: error recovery,
logging, rate limiting and input validation run before the command's own
business logic.
"""

from bwaincell.constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
__app_name__ = APP_NAME

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "__version__",
    "__app_name__",
]
