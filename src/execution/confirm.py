"""Install confirmation gate."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from common.environment import is_ci, no_tty

logger = logging.getLogger(__name__)

PromptFn = Callable[[str, str], Awaitable[str]]


class Decision(Enum):
    """Outcome of the confirmation gate."""
    PROCEED = "proceed"
    ABORT = "abort"


@dataclass(frozen=True)
class InteractivityContext:
    """Pre-decided answer plus what the terminal allows."""
    yes: Optional[bool] = None
    no_tty: bool = False
    ci: bool = False

    @classmethod
    def detect(cls, yes: Optional[bool] = None) -> "InteractivityContext":
        return cls(yes=yes, no_tty=no_tty(), ci=is_ci())

    @property
    def interactive(self) -> bool:
        return not (self.no_tty or self.ci)


async def read_prompt(text: str, default: str) -> str:
    """Ask on the terminal; an empty answer means ``default``. EOF counts as "n"."""
    try:
        answer = await asyncio.to_thread(input, text)
    except EOFError:
        return "n"
    return answer.strip() or default


def _display(descriptor: str) -> str:
    # "foo@" descriptors come from name-only requests
    return descriptor[:-1] if descriptor.endswith("@") else descriptor


class InstallConfirmer:
    """Decide whether the pending additions may be installed."""

    def __init__(self, prompt: PromptFn = read_prompt):
        self._prompt = prompt

    async def confirm(self, additions: Sequence[str], context: InteractivityContext) -> Decision:
        """Return PROCEED or ABORT for ``additions`` under ``context``."""
        if not additions:
            return Decision.PROCEED
        if context.yes is True:
            return Decision.PROCEED
        if context.yes is False:
            return Decision.ABORT

        names = [_display(a) for a in additions]
        if not context.interactive:
            plural = "package was" if len(names) == 1 else "packages were"
            logger.warning(
                "The following %s not found and will be installed: %s",
                plural,
                ", ".join(names),
            )
            return Decision.PROCEED

        listing = "".join(f"  {n}\n" for n in names)
        text = f"Need to install the following packages:\n{listing}Ok to proceed? "
        answer = (await self._prompt(text, "y")).strip() or "y"
        if answer.lower()[:1] != "y":
            return Decision.ABORT
        return Decision.PROCEED
