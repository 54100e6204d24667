"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler turns a parsed request into a response value. This server has
one: StaticFileHandler, which maps targets onto files under a document
root.

    Request                 Handler                 Response
   ┌─────────┐           ┌───────────┐           ┌──────────────┐
   │ GET     │           │ resolve   │           │ 200 OK       │
   │ /a.css  │ ────────▶ │ contain   │ ────────▶ │ file_path=…  │
   │         │           │ stat      │           │              │
   └─────────┘           └───────────┘           └──────────────┘

Handlers never touch the socket. Writing the response is the
ResponseWriter's job.

=============================================================================
"""

from .static import StaticFileHandler

__all__ = [
    "StaticFileHandler",
]
