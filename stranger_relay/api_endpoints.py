"""
REST API endpoints for the stranger relay service
"""
from fastapi import Request


async def read_root():
    """Root endpoint"""
    return {"message": "Stranger relay service is running."}


async def health():
    return {"status": "ok"}


async def api_stats(request: Request):
    """Connection, waiting and pairing counts. Ids are not exposed."""
    return request.app.state.session.stats()
