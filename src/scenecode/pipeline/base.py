"""Base protocol for pipeline handlers."""

from typing import Protocol, TypeVar

from scenecode.core.exceptions import ScenecodeError
from scenecode.core.types import Result

# Contravariant input (handlers can accept supertypes), invariant output
T_In = TypeVar("T_In", contravariant=True)
T_Out = TypeVar("T_Out")
T_Error = TypeVar("T_Error", bound=ScenecodeError)


class BaseAsyncHandler(Protocol[T_In, T_Out, T_Error]):
    """Protocol for asynchronous pipeline handlers.

    A handler turns one command into a ``Result``; expected failures are
    returned as ``Failure`` values rather than raised.
    """

    async def handle(self, command: T_In) -> Result[T_Out, T_Error]:
        """Process a command and return its Result."""
        ...
