"""Partner lookup against the unified ``partners`` view."""

import logging
from typing import Optional

import psycopg2

from portal.core.db import Database, fetch_partner_row
from portal.core.errors import ClientInputError, NotFoundError, UnexpectedFailure, UpstreamFailure
from portal.etl.transform import to_partner_view
from portal.models import PartnerView

logger = logging.getLogger(__name__)


def lookup_partner(partner_id: Optional[str], *, database: Database) -> PartnerView:
    """Fetch one partner by id and normalize it.

    Raises ``ClientInputError`` for a blank id (no query is issued),
    ``NotFoundError`` when no row matches, ``UpstreamFailure`` when the
    database fails and ``UnexpectedFailure`` when the row cannot be mapped.
    """
    partner_id = (partner_id or "").strip()
    if not partner_id:
        raise ClientInputError("Partner ID is required")

    try:
        row = fetch_partner_row(database, partner_id)
    except psycopg2.Error as exc:
        logger.error("Partner lookup failed for id=%s: %s", partner_id, exc)
        raise UpstreamFailure("Failed to fetch partner") from exc

    if row is None:
        logger.info("Partner not found: id=%s", partner_id)
        raise NotFoundError("Partner not found")

    try:
        return to_partner_view(row)
    except (TypeError, ValueError) as exc:
        logger.error("Malformed partner row for id=%s: %s", partner_id, exc)
        raise UnexpectedFailure("Internal server error") from exc
