# run_dev.py
"""
Local development launcher for FastAPI.
Equivalent to: `uvicorn gemini_flash_mcp.app:app --reload --host 0.0.0.0 --port 3000`

Set USE_ECHO=1 to run without a GEMINI_API_KEY (echo dev client).
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "gemini_flash_mcp.app:app",
        host="0.0.0.0",
        port=3000,
        reload=True,
    )
