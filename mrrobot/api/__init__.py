"""MR-ROBOT API - FastAPI service owning the dual-store mediator."""
