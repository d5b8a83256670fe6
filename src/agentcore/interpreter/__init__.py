"""Patch interpretation: normalise, parse and repair model output."""

from .normalizer import normalize_patch_output
from .parser import MalformedPatchError, parse_patch_output
from .patch_interpreter import InterpreterLogger, PatchInterpreter, TelemetryInterpreterLogger

__all__ = [
    "InterpreterLogger",
    "MalformedPatchError",
    "PatchInterpreter",
    "TelemetryInterpreterLogger",
    "normalize_patch_output",
    "parse_patch_output",
]
