from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hubtrack.api.routers.hub_rates import router as hub_rates_router
from hubtrack.api.v1.endpoints.api import api_router


app = FastAPI(title="HUBTRACK API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hub_rates_router)
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "up"}
