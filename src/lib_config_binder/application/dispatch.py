"""Decoder dispatch: pick a format for one source and merge it into the record.

With a recognised extension only that format is used. Otherwise the formats in
:data:`PROBE_ORDER` are tried in turn; the first clean result wins, an
:class:`UnmatchedKeysError` ends probing immediately, and any other failure
falls through to the next format. When every format fails, the raised error
carries the message of the last attempt and chains it as ``__cause__``.

Each attempt merges into a deep copy of the record and copies the fields back
only on success, so a rejected attempt never leaves the record half-written.
"""

from __future__ import annotations

import copy
import os
from typing import Any, Final, Mapping, Sequence

from ..domain.errors import DecodeError
from ..domain.schema import copy_fields
from ..observability import log_debug
from .merge import merge_into
from .ports import Decoder

PROBE_ORDER: Final[tuple[str, ...]] = ("toml", "json", "yaml")


class DecoderDispatch:
    """Route source bytes to the decoder matching their format."""

    def __init__(self, decoders: Mapping[str, Decoder], probe_order: Sequence[str] = PROBE_ORDER) -> None:
        self._decoders = dict(decoders)
        self._probe_order = tuple(name for name in probe_order if name in self._decoders)
        self._by_suffix = {suffix: decoder for decoder in self._decoders.values() for suffix in decoder.suffixes}

    def decoder_for(self, path: str) -> Decoder | None:
        """Return the decoder registered for the extension of *path*, if any.

        Examples
        --------
        >>> from lib_config_binder.adapters.file_loaders.structured import DECODERS
        >>> DecoderDispatch(DECODERS).decoder_for("config/app.YML").name
        'yaml'
        >>> DecoderDispatch(DECODERS).decoder_for("config/app") is None
        True
        """

        return self._by_suffix.get(os.path.splitext(path)[1].lower())

    def decode(self, payload: bytes, record: Any, *, strict: bool, source: str | None = None) -> str:
        """Merge *payload* into *record* and return the name of the format used."""

        decoder = self.decoder_for(source) if source else None
        if decoder is not None:
            self._apply(decoder, payload, record, strict=strict, source=source)
            return decoder.name
        last_error: DecodeError | None = None
        for name in self._probe_order:
            decoder = self._decoders[name]
            try:
                self._apply(decoder, payload, record, strict=strict, source=source)
            except DecodeError as exc:
                log_debug("config_format_rejected", layer="file", path=source, format=name, error=str(exc))
                last_error = exc
                continue
            return name
        detail = f": {last_error}" if last_error is not None else ""
        raise DecodeError(f"failed to decode config {source or '<memory>'}{detail}") from last_error

    @staticmethod
    def _apply(decoder: Decoder, payload: bytes, record: Any, *, strict: bool, source: str | None) -> None:
        data = decoder.parse(payload, path=source)
        scratch = copy.deepcopy(record)
        merge_into(scratch, data, strict=strict, source=source)
        copy_fields(record, scratch)
