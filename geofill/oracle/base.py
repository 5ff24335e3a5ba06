"""Oracle protocol and prompt construction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from geofill.common.models import Coordinate

PROMPT_TEMPLATE = """
I need the precise latitude and longitude for the following place in {region}.

Name: {display_name}
Address: {address}

If the address is not in English, please translate internally to find the location.
Provide the coordinates for the specific building.

Return ONLY the JSON object.
"""


@dataclass(frozen=True)
class OracleQuery:
    address: str
    display_name: str


class Oracle(Protocol):
    """Maps an address to a coordinate.

    ``locate`` returns ``None`` when the oracle answered but found nothing,
    and raises a :class:`~geofill.common.errors.OracleError` subclass when the
    call itself failed.
    """

    def locate(self, query: OracleQuery) -> Coordinate | None: ...


def build_prompt(query: OracleQuery, region: str) -> str:
    return PROMPT_TEMPLATE.format(
        region=region,
        display_name=query.display_name,
        address=query.address,
    )
