from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fitplan.core.config import get_settings
from fitplan.core.logger import setup_logger
from fitplan.routers import plans, public

setup_logger(get_settings().log_level)

app = FastAPI(title="FitPlan AI API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with your specific domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(plans.router)
app.include_router(public.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to FitPlan AI"}
