"""
Shared FastAPI dependencies
"""

from fastapi import Request

from ..bank import Bank


def get_bank(request: Request) -> Bank:
    """The Bank instance attached to the running application"""
    return request.app.state.bank
