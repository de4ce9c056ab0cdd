"""Off-event-loop decoding.

decode() is CPU-bound and synchronous.  decode_async() moves it to an
executor so an asyncio application stays responsive; DecoderPool keeps a
set of worker processes for decoding many large buffers in parallel.
Limits stay per call: each submission carries its own.
"""

from __future__ import annotations

import asyncio
import functools
from concurrent.futures import ProcessPoolExecutor
from typing import Optional, Union

from ._constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DICTIONARY_SIZE,
    DEFAULT_MAX_STRING_LENGTH,
)
from ._decoder import decode
from ._value import Value

BytesLike = Union[bytes, bytearray, memoryview]


class DecoderPool:
    """A pool of worker processes running decode().

    Use as a context manager, or call close() when done:

        with DecoderPool(max_workers=4) as pool:
            value = await pool.decode(buf)
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        self._executor = ProcessPoolExecutor(max_workers=max_workers)

    async def decode(self, buffer: BytesLike, *,
                     max_depth: int = DEFAULT_MAX_DEPTH,
                     max_dictionary_size: int = DEFAULT_MAX_DICTIONARY_SIZE,
                     max_string_length: int = DEFAULT_MAX_STRING_LENGTH) -> Value:
        loop = asyncio.get_running_loop()
        # memoryview can't be pickled; hand the worker plain bytes.
        job = functools.partial(decode, bytes(buffer), max_depth=max_depth,
                                max_dictionary_size=max_dictionary_size,
                                max_string_length=max_string_length)
        return await loop.run_in_executor(self._executor, job)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "DecoderPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


async def decode_async(buffer: BytesLike, *,
                       max_depth: int = DEFAULT_MAX_DEPTH,
                       max_dictionary_size: int = DEFAULT_MAX_DICTIONARY_SIZE,
                       max_string_length: int = DEFAULT_MAX_STRING_LENGTH,
                       pool: Optional[DecoderPool] = None) -> Value:
    """Decode without blocking the running event loop.

    Runs in the loop's default (thread) executor, or in `pool` if given.
    """
    if pool is not None:
        return await pool.decode(buffer, max_depth=max_depth,
                                 max_dictionary_size=max_dictionary_size,
                                 max_string_length=max_string_length)
    loop = asyncio.get_running_loop()
    job = functools.partial(decode, bytes(buffer), max_depth=max_depth,
                            max_dictionary_size=max_dictionary_size,
                            max_string_length=max_string_length)
    return await loop.run_in_executor(None, job)
