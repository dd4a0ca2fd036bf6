"""modcrypt - modular crypt format password hashing & strength estimation"""

__version__ = "1.0"

#=========================================================
#quickstart interface
#=========================================================
from modcrypt.context import Context
from modcrypt.strength import Strength

__all__ = [
    "Context",
    "Strength",
]

#=========================================================
#eof
#=========================================================
