from app_factory import create_app
from routes.http import router as http_router
from routes.ws import router as ws_router
from triage_intake.config import get_server_port

app = create_app()
app.include_router(http_router)
app.include_router(ws_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=get_server_port(),
    )
