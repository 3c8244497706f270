import os

# Set before any application imports so the module-level Settings singleton
# never points the Valhalla cache at a sqlite file in the working directory.
os.environ.setdefault("VALHALLA_CACHE_BACKEND", "memory")
os.environ.setdefault("VALHALLA_ENDPOINT", "http://valhalla.test/trace_attributes")
os.environ.setdefault("CHUNK_DELAY_SECONDS", "0")
