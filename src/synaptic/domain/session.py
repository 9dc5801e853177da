from __future__ import annotations

from uuid import uuid4

from synaptic.domain.enums import Role
from synaptic.domain.errors import SessionIndexError
from synaptic.domain.models import Message, TokenUsage


class Session:
    """Ordered conversation transcript shared across synapse calls.

    A session is owned by the caller and passed into each fire call. It is not
    synchronised: one conversation is expected to be driven by one sequential
    caller. Synapses only ever add to it through ``append`` after a call has
    fully succeeded.
    """

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._id = str(uuid4())
        self._messages: list[Message] = list(messages or [])
        self._last_usage: TokenUsage | None = None

    @property
    def id(self) -> str:
        return self._id

    def __len__(self) -> int:
        return len(self._messages)

    def messages(self) -> list[Message]:
        return list(self._messages)

    def append(self, user: Message, assistant: Message) -> None:
        if user.role != Role.USER:
            raise ValueError(f"first message of a turn must have role 'user', got {user.role.value!r}")
        if assistant.role != Role.ASSISTANT:
            raise ValueError(f"second message of a turn must have role 'assistant', got {assistant.role.value!r}")
        self._messages.extend((user, assistant))

    def at(self, index: int) -> Message:
        self._check_index(index, len(self._messages))
        return self._messages[index]

    def remove(self, index: int) -> None:
        self._check_index(index, len(self._messages))
        del self._messages[index]

    def replace(self, index: int, message: Message) -> None:
        self._check_index(index, len(self._messages))
        self._messages[index] = message

    def insert(self, index: int, message: Message) -> None:
        # Inserting at len() appends.
        self._check_index(index, len(self._messages), allow_end=True)
        self._messages.insert(index, message)

    def truncate(self, keep_first: int, keep_last: int) -> None:
        if keep_first < 0 or keep_last < 0:
            raise ValueError("keep_first and keep_last must be non-negative")
        total = len(self._messages)
        if keep_first + keep_last >= total:
            return
        tail = self._messages[total - keep_last :] if keep_last else []
        self._messages = [*self._messages[:keep_first], *tail]

    def prune(self, pair_count: int) -> None:
        if pair_count < 0:
            raise ValueError(f"prune count must be non-negative, got {pair_count}")
        to_remove = pair_count * 2
        if to_remove >= len(self._messages):
            self._messages = []
            return
        if to_remove:
            self._messages = self._messages[: len(self._messages) - to_remove]

    def clear(self) -> None:
        self._messages = []
        self._last_usage = None

    def set_messages(self, messages: list[Message]) -> None:
        self._messages = list(messages)

    def last_usage(self) -> TokenUsage | None:
        if self._last_usage is None:
            return None
        return self._last_usage.model_copy()

    def record_usage(self, usage: TokenUsage | None) -> None:
        if usage is not None:
            self._last_usage = usage.model_copy()

    @staticmethod
    def _check_index(index: int, length: int, *, allow_end: bool = False) -> None:
        upper_bound = length + 1 if allow_end else length
        if index < 0 or index >= upper_bound:
            raise SessionIndexError(index, length)
