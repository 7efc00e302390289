"""FastAPI application entry point for the Spades room server"""

from .ws.server import create_app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
