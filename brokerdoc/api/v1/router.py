from fastapi import APIRouter

from brokerdoc.api.v1.endpoints import chat, conversations, documents, health, templates, upload

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(chat.router, prefix="/chat", tags=["Chat"])
api_router.include_router(conversations.router, prefix="/conversations", tags=["Conversations"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(templates.router, prefix="/templates", tags=["Templates"])
api_router.include_router(upload.router, prefix="/upload", tags=["Upload"])

__all__ = ["api_router"]
