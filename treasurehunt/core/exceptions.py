"""
TreasureHunt Exception Hierarchy

All exceptions inherit from TreasureHuntError for easy catching.
Every class carries a machine-readable ``code`` so callers (CLI,
indexers, tests) can branch on the rejection reason without parsing
the message.
"""


class TreasureHuntError(Exception):
    """Base exception for all TreasureHunt errors"""

    code = "TREASURE_HUNT_ERROR"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class NotFound(TreasureHuntError):
    """Raised for an unknown round or charity id"""
    code = "NOT_FOUND"


class InvalidState(TreasureHuntError):
    """Raised when the round (or contract) is in the wrong lifecycle state"""
    code = "INVALID_STATE"


class Unauthorized(TreasureHuntError):
    """Raised when the caller fails the ownership or administrator predicate"""
    code = "UNAUTHORIZED"


class InvalidInput(TreasureHuntError):
    """Raised for malformed arguments"""
    code = "INVALID_INPUT"


class SecretMismatch(TreasureHuntError):
    """Raised when a revealed hash does not equal the stored commitment"""
    code = "SECRET_MISMATCH"


class TransferFailure(TreasureHuntError):
    """Raised when an outbound value transfer does not succeed"""
    code = "TRANSFER_FAILED"


class ReentrancyError(TreasureHuntError):
    """Raised when claim or withdraw is entered while the call latch is held"""
    code = "REENTRANT_CALL"


class LedgerError(TreasureHuntError):
    """Raised when audit log operations fail"""
    code = "LEDGER_ERROR"


class ConfigError(TreasureHuntError):
    """Raised when a configuration file is malformed"""
    code = "CONFIG_ERROR"
