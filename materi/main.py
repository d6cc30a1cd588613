# materi/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from materi.config import settings
from materi.db import init_db
from materi.logging_setup import setup_logging
from materi.middleware import RequestIdMiddleware

from materi.routers import auth, suppliers, products
from materi.routers import quotes, quote_line_items, carts, cart_items

setup_logging(settings)
log = logging.getLogger("materi")


def _cors_origins(raw: str) -> tuple[list[str], str | None]:
    """Split CORS_ORIGINS into literal origins and one combined regex (/.../ entries)."""
    origins, patterns = [], []
    for entry in (e.strip() for e in raw.split(",")):
        if not entry:
            continue
        if len(entry) > 2 and entry.startswith("/") and entry.endswith("/"):
            patterns.append(entry[1:-1])
        else:
            origins.append(entry.rstrip("/"))
    return origins, ("|".join(f"(?:{p})" for p in patterns) or None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info("materi api up (env=%s, db=%s)", settings.APP_ENV, settings.DB_URL.split("://", 1)[0])
    yield


app = FastAPI(title="Materi API", version="0.1.0", lifespan=lifespan)

_origins, _origin_regex = _cors_origins(settings.CORS_ORIGINS)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_origin_regex=_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(suppliers.router)
app.include_router(products.router)
app.include_router(quotes.router)
app.include_router(quote_line_items.router)
app.include_router(carts.router)
app.include_router(cart_items.router)


@app.get("/health")
def health():
    return {"status": "ok"}
