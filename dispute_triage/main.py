from fastapi import FastAPI
from dispute_triage.api.routes import router
from dispute_triage.api.admin_routes import router as admin_router

app = FastAPI(title="Dispute Triage API")

app.include_router(router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}
