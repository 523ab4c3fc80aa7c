# main.py
"""
Entry point: `uvicorn main:app` oder `python main.py`.
Metrik-Zeilen (Logger "metrics") bleiben reines JSON, alles andere bekommt Level + Logger-Name.
"""
import logging, sys
from portfolio_chat.api import app  # noqa

root = logging.getLogger()
if not root.handlers:
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(h)
    root.setLevel(logging.INFO)

    metrics = logging.getLogger("metrics")
    mh = logging.StreamHandler(sys.stdout)
    mh.setFormatter(logging.Formatter("%(message)s"))
    metrics.addHandler(mh)
    metrics.propagate = False


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
