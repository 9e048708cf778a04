from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ✅ Import All API Routes
from jobtrack.api.routes import subscription, system


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Jobtrack API")

# ✅ CORS LOCKDOWN — ONLY ALLOW YOUR FRONTEND
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",      # local frontend
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "X-Admin-Token"],
)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(subscription.router)
app.include_router(system.router)


# ============================================
# ✅ HEALTH CHECK ROOT ENDPOINT
# ============================================

@app.get("/")
def root():
    return {"status": "Jobtrack API running"}
