import os

# non-interactive matplotlib backend for the experiment tests
os.environ.setdefault("MPLBACKEND", "Agg")
