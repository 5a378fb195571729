from plastic_bridge.main import app


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", "9508"))
    uvicorn.run("plastic_bridge.main:app", host="0.0.0.0", port=port, reload=True)
