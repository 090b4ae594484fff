import logging

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from api.collaboration import router as collaboration_router, serve_collaboration_socket
from api.perform import router as perform_router
from collab import initialize_collab_broadcaster
from collab import broadcaster as broadcaster_module  # Access collab_broadcaster at runtime
from config import CORS_ORIGINS, HOST, PORT

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Request Runner Backend",
    description="Executes user-defined HTTP requests and pushes live collaboration events",
    version="1.0.0"
)

# Add CORS middleware for frontend connections
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include request execution routes
app.include_router(perform_router)

# Include collaboration (invitations, presence) routes
app.include_router(collaboration_router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize the collaboration broadcaster on startup"""
    initialize_collab_broadcaster()
    logger.info("Collaboration broadcaster started")


@app.on_event("shutdown")
async def shutdown_event():
    """Close every live collaboration connection on server shutdown"""
    if broadcaster_module.collab_broadcaster:
        await broadcaster_module.collab_broadcaster.close_all()
        logger.info("Collaboration broadcaster stopped")


# WebSocket endpoint for collaboration presence and notifications
@app.websocket("/ws/collaboration")
async def collaboration_websocket_handler(websocket: WebSocket):
    """WebSocket endpoint for collaboration events.

    Clients authenticate with ?access_token=<jwt>, then join and leave
    collection groups to receive that collection's events.
    """
    if not broadcaster_module.collab_broadcaster:
        await websocket.close(code=1011, reason="Collaboration broadcaster not initialized")
        return

    await serve_collaboration_socket(websocket, broadcaster_module.collab_broadcaster)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    broadcaster = broadcaster_module.collab_broadcaster
    return {
        "status": "healthy",
        "service": "request-runner-backend",
        "connections": broadcaster.get_active_connections() if broadcaster else 0,
    }


@app.get("/")
async def root():
    """API overview"""
    return {
        "message": "Request Runner Backend",
        "endpoints": {
            "perform_request": "POST /perform-request",
            "create_collaboration": "POST /api/collaboration",
            "update_collaboration_status": "PUT /api/collaboration/status",
            "pending_invitations": "/api/collaboration/pending",
            "user_collaborations": "/api/collaboration/user",
            "delete_collaboration": "DELETE /api/collaboration/{collaboration_id}",
            "collection_collaborations": "/api/collaboration/collection/{collection_id}",
            "collection_presence": "/api/collaboration/presence/{collection_id}",
            "collaboration_socket": "WS /ws/collaboration?access_token=<jwt>",
            "health": "/health"
        },
        "documentation": "/docs"
    }

if __name__ == "__main__":
    # Run the server
    uvicorn.run(
        "main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info"
    )
