"""Resolve the caller's IP address from a request."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"


@dataclass(frozen=True)
class ClientIdentityResolver:
    """Pick the client address according to the proxy trust policy.

    With ``trust_forward_header`` set, ``x-forwarded-for`` is split into a
    chain where entry 0 is the originating client. ``forward_header_index``
    is 1-based and counts from the start of the chain or from its end.
    """

    trust_forward_header: bool = False
    count_from_start: bool = True
    forward_header_index: int = 1

    def _from_forward_header(self, value: str) -> Optional[str]:
        entries: List[str] = [entry.strip() for entry in value.split(",") if entry.strip()]
        if not entries:
            return None

        index = self.forward_header_index
        if index > len(entries):
            logging.warning(
                "Forward header index %s exceeds the %s addresses in %r; using %s",
                index,
                len(entries),
                value,
                len(entries),
            )
            index = len(entries)

        if self.count_from_start:
            return entries[index - 1]
        return entries[len(entries) - index]

    def resolve(self, headers: Mapping[str, str], peer: Optional[str]) -> Optional[str]:
        if self.trust_forward_header:
            forwarded = headers.get(FORWARDED_FOR_HEADER)
            if forwarded:
                address = self._from_forward_header(forwarded)
                if address:
                    return address

        real_ip = (headers.get(REAL_IP_HEADER) or "").strip()
        if real_ip:
            return real_ip
        return peer or None
