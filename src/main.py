from fastapi import FastAPI
from .logging_config import setup_logging
from .routers.bills import router as bills_router
from .routers.budgets import router as budgets_router
from .routers.goals import router as goals_router

logger = setup_logging()

app = FastAPI(title="Pocket Planner API")

app.include_router(bills_router)
app.include_router(budgets_router)
app.include_router(goals_router)


@app.get("/")
def read_root():
    return "Server is running."
