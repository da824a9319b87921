"""Recommended listings endpoint for Vercel (requires a signed-in rentee)."""

from http.server import BaseHTTPRequestHandler
import asyncio
import json

from src.services.recommendations import recommend_listings
from src.services.session import extract_bearer_token, get_user_id
from src.utils.errors import SessionError, SupabaseError
from src.utils.logging import correlation_context, get_structured_logger, setup_logging

setup_logging()
logger = get_structured_logger(__name__)


async def run_recommendations(access_token: str | None) -> dict | None:
    user_id = await get_user_id(access_token)
    if user_id is None:
        return None
    listings = await recommend_listings(user_id)
    return {
        "count": len(listings),
        "listings": [listing.model_dump(mode="json") for listing in listings],
    }


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for rentee recommendations."""

    def _send_json(self, status: int, payload: dict) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode('utf-8'))

    def do_GET(self):
        with correlation_context():
            try:
                token = extract_bearer_token(self.headers.get("Authorization"))
                body = asyncio.run(run_recommendations(token))
                if body is None:
                    self._send_json(401, {"error": "authentication required"})
                    return
                self._send_json(200, body)
            except (SupabaseError, SessionError) as e:
                logger.error("Recommendation backend error", error=str(e))
                self._send_json(502, {"error": "recommendation backend unavailable"})
            except Exception as e:
                logger.error("Error computing recommendations", error=str(e), exc_info=True)
                self._send_json(500, {"error": "internal server error"})
