"""
Run the TrendSignal API server.
"""
import os
import sys

# Set working directory and path
root_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(root_dir)
sys.path.insert(0, root_dir)

# Load environment
from dotenv import load_dotenv
load_dotenv(os.path.join(root_dir, ".env"))

# Run uvicorn
import uvicorn

if __name__ == "__main__":
    from trendsignal.core.config import settings

    print("Starting TrendSignal API Server...")
    print(f"Working directory: {root_dir}")
    print(f"API Docs: http://localhost:{settings.port}/docs")
    print("-" * 50)

    uvicorn.run(
        "trendsignal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
