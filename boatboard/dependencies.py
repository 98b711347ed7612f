from fastapi import Request

from boatboard.services.cache import BookingCache


def get_cache(request: Request) -> BookingCache:
    """The BookingCache built by the app lifespan."""
    return request.app.state.cache
