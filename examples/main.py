# examples/main.py
"""
crudgate: serve configuration-driven CRUD endpoints.

Run with `uvicorn main:app --reload` from this directory; the tables and
field mappings come from `config.yml`.
"""

from pathlib import Path

from fastapi import FastAPI

from crudgate import ApiGate, load_config
from crudgate.core.logging import log

# ? Main API Gate -----------------------------------------------------------------------------------

CONFIG_PATH = Path(__file__).parent / "config.yml"

app: FastAPI = FastAPI()

config = load_config(CONFIG_PATH)
gate = ApiGate(config, app)
gate.generate_all_routes(show_catalogs=True)

log.section("Ready")
gate.print_welcome(port=8000)
