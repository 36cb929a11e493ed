import logging
from fastapi import FastAPI
from dotenv import load_dotenv
load_dotenv()

from app.alerts.router import router as alerts_router
from app.devices.router import router as devices_router
from app.inactivity.router import router as inactivity_router
from app.motion_events.router import router as motion_events_router

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Motion Inactivity Service")

app.include_router(devices_router)
app.include_router(motion_events_router)
app.include_router(inactivity_router)
app.include_router(alerts_router)

@app.get("/health")
def health():
    return {"status": "ok"}
