"""Listing search endpoint for Vercel.

GET /api/search?q=2+bed+near+sainbu+under+15k
"""

from http.server import BaseHTTPRequestHandler
from urllib.parse import parse_qs, urlparse
import asyncio
import json

from src.services.listing_search import search_listings
from src.services.session import extract_bearer_token, get_user_id
from src.utils.errors import SessionError, SupabaseError
from src.utils.logging import correlation_context, get_structured_logger, setup_logging

setup_logging()
logger = get_structured_logger(__name__)

MAX_QUERY_LENGTH = 500


async def run_search(query: str, access_token: str | None) -> dict:
    user_id = await get_user_id(access_token)
    result = await search_listings(query, user_id=user_id)
    return {
        "query": result.query,
        "filters": result.filters.model_dump(mode="json"),
        "count": result.count,
        "listings": [listing.model_dump(mode="json") for listing in result.listings],
    }


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for listing search."""

    def _send_json(self, status: int, payload: dict) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode('utf-8'))

    def do_GET(self):
        with correlation_context() as correlation_id:
            try:
                params = parse_qs(urlparse(self.path).query)
                query = params.get("q", [""])[0]
                if len(query) > MAX_QUERY_LENGTH:
                    raise ValueError(f"query longer than {MAX_QUERY_LENGTH} characters")

                token = extract_bearer_token(self.headers.get("Authorization"))
                body = asyncio.run(run_search(query, token))
                body["correlation_id"] = correlation_id
                self._send_json(200, body)
            except ValueError as e:
                logger.warning("Rejected search request", error=str(e))
                self._send_json(400, {"error": str(e)})
            except (SupabaseError, SessionError) as e:
                logger.error("Search backend error", error=str(e))
                self._send_json(502, {"error": "search backend unavailable"})
            except Exception as e:
                logger.error("Error processing search", error=str(e), exc_info=True)
                self._send_json(500, {"error": "internal server error"})
