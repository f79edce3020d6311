"""Commands."""

from rcverify.command.verify import VerifyCommand

__all__ = ["VerifyCommand"]
