#!/usr/bin/env python3
"""
Simple run script for QuizFlow.

Usage:
    python run.py

Or with custom settings:
    HOST=127.0.0.1 PORT=8080 STORE_BACKEND=rest REST_URL=... python run.py
"""

import uvicorn
import os


def main():
    """Run the FastAPI application."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "true").lower() == "true"
    server = f"http://{host}:{port}"

    print(f"""
╔═══════════════════════════════════════════════════════════════╗
║                         QuizFlow                              ║
║                                                               ║
║  Branching product-selection questionnaires                   ║
╠═══════════════════════════════════════════════════════════════╣
║  Server:    {server:<50}║
║  API Docs:  {server + '/docs':<50}║
║  ReDoc:     {server + '/redoc':<50}║
╠═══════════════════════════════════════════════════════════════╣
║  Demo flows: /flow/laptop  /flow/tv  /flow/ac                 ║
╚═══════════════════════════════════════════════════════════════╝
    """)

    uvicorn.run(
        "quizflow.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
