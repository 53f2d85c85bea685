"""
Feature-specific managers and procedures built on the core session.
"""

from .bridge import BridgeManager
from .power import PowerManager
from .modem import ModemManager
from .script import ScriptRunner, parse_script, parse_script_line, parse_scpi_line
from .socket import ChunkedTransport, split_chunks
from .unlock import UnlockProcedure, skewed_box_muller

__all__ = [
    "BridgeManager",
    "PowerManager",
    "ModemManager",
    "ScriptRunner",
    "parse_script",
    "parse_script_line",
    "parse_scpi_line",
    "ChunkedTransport",
    "split_chunks",
    "UnlockProcedure",
    "skewed_box_muller",
]
