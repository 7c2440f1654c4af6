"""
This module contains the IOInterface abstract base class and its implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from typing import Iterable, List

import aiofiles


class IOInterface(ABC):
    """
    Abstract base class for an IO interface.

    This class defines the interface for text input/output used by the console
    adapter.
    """

    @abstractmethod
    def output(self, message: str) -> None:
        """Output a message to the interface."""
        pass

    @abstractmethod
    def input(self, prompt: str) -> str:
        """Get input from the user with a prompt."""
        pass

    def check_numeric_response(self, ctx: str, attempts: int = 3) -> int:
        """
        Ask until the response is a whole number.

        Raises:
            ValueError: If no valid number was given within the attempts
        """
        for _ in range(attempts):
            response = self.input(ctx)
            try:
                return int(response)
            except ValueError:
                self.output("Invalid response, please enter a number.")
        raise ValueError("Too many invalid responses. Operation aborted.")


class DummyIOInterface(IOInterface):
    """
    A dummy IO interface for simulation purposes. Does not perform any actual IO.
    """

    def output(self, message: str) -> None:
        """Simulates output operation."""
        pass

    def input(self, prompt: str) -> str:
        """Simulates input operation."""
        return ""


class TestIOInterface(IOInterface):
    """
    Scripted IO for tests: inputs are queued up front and outputs are kept.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, inputs: Iterable[str] = ()):
        self.inputs = deque(inputs)
        self.outputs: List[str] = []
        self.prompts: List[str] = []

    def output(self, message: str) -> None:
        self.outputs.append(message)

    def input(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError("No scripted input left")
        return self.inputs.popleft()

    def add_input(self, value: str) -> None:
        self.inputs.append(value)


class ConsoleIOInterface(IOInterface):
    """
    A console IO interface for interactive play.
    """

    def output(self, message: str) -> None:
        print(message)

    def input(self, prompt: str) -> str:
        return input(prompt)


class LoggingIOInterface(IOInterface):
    """
    A logging IO interface for recording purposes. Writes output messages to a log file.

    Used to keep a transcript of a session next to the interactive console.
    """

    def __init__(self, log_file_path: str):
        self.log_file_path = log_file_path

    def output(self, message: str) -> None:
        """Write an output message to the log file."""
        with open(self.log_file_path, "a", encoding="utf-8") as log_file:
            log_file.write(message + "\n")

    def input(self, prompt: str) -> str:
        """Log the prompt and return empty string."""
        self.output(f"[INPUT PROMPT] {prompt}")
        return ""

    async def output_async(self, message: str) -> None:
        """Async version of output for use inside the event loop."""
        async with aiofiles.open(
            self.log_file_path, mode="a", encoding="utf-8"
        ) as log_file:
            await log_file.write(message + "\n")
