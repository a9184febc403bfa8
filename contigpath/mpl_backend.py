from __future__ import annotations

import os
import tempfile
from typing import Optional


def configure_headless_matplotlib(config_dir: Optional[str] = None) -> str:
    """Select an Agg backend and return its name.

    Figures are exported from Flask request threads and CLI runs, neither of
    which may open a GUI event loop. Safe to call repeatedly.
    """
    if not os.environ.get("MPLBACKEND"):
        os.environ["MPLBACKEND"] = "Agg"
    if config_dir or not os.environ.get("MPLCONFIGDIR"):
        os.environ["MPLCONFIGDIR"] = config_dir or os.path.join(tempfile.gettempdir(), "contigpath_mplconfig")

    import matplotlib

    backend = str(matplotlib.get_backend()).lower()
    if "agg" in backend:
        return backend
    matplotlib.use("Agg", force=True)
    return "agg"
