"""Server entry point for the virtual assistant API."""

import os

import uvicorn


def main():
    """Run the FastAPI server."""
    uvicorn.run(
        "virtual_assistant.api:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ASSISTANT_RELOAD", "false").lower() in ("true", "1", "yes"),
        log_level="info",
    )


if __name__ == "__main__":
    main()
