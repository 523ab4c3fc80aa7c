#!/usr/bin/env python
"""
Evaluation gegen einen laufenden Portfolio-Chat.

Wartet per Statusabfrage, bis der Index bereit ist, stellt dann jede Frage des
Katalogs über /chat und hängt pro Antwort eine CSV-Zeile an.
"""
import argparse
import csv
import datetime as dt
import time
from pathlib import Path
from typing import Dict, List, Tuple

import requests

EVAL_QUESTIONS: List[Tuple[int, str]] = [
    (1, "What are you studying at the moment?"),
    (2, "Which frameworks do you enjoy working with?"),
    (3, "What kind of e-commerce work have you done?"),
    (4, "How do you approach responsive design?"),
    (5, "What is 12 * 12?"),
]

FIELDNAMES = [
    "timestamp", "run_name", "question_id", "question_text", "repetition",
    "ok", "status_code", "error_message", "answer_len_chars", "answer", "latency_ms",
]


def post_chat(base_url: str, body: Dict, timeout: float = 120.0) -> requests.Response:
    return requests.post(base_url.rstrip("/") + "/chat", json=body, timeout=timeout)


def wait_until_ready(base_url: str, sentinel: str, attempts: int = 30, pause: float = 2.0) -> bool:
    """Statusabfrage wiederholen, bis {"status": "ready"} kommt."""
    for _ in range(attempts):
        try:
            status = post_chat(base_url, {"question": sentinel}).json()
        except (requests.RequestException, ValueError) as e:
            print(f"Status nicht abrufbar: {e}")
        else:
            if status.get("status") == "ready":
                print(f"Bereit, Modell: {status.get('model')}")
                return True
            print(f"Status: {status}")
        time.sleep(pause)
    return False


def ask(base_url: str, question: str) -> Dict:
    t0 = time.perf_counter()
    try:
        resp = post_chat(base_url, {"question": question, "stream": False})
    except requests.RequestException as e:
        return dict(ok=False, status_code=None, error_message=str(e),
                    answer_len_chars=0, answer="", latency_ms=None)
    latency_ms = round((time.perf_counter() - t0) * 1000.0, 2)

    data = resp.json() if resp.content else {}
    answer = data.get("response") or ""
    return dict(ok=resp.ok, status_code=resp.status_code, error_message=data.get("error"),
                answer_len_chars=len(answer), answer=answer, latency_ms=latency_ms)


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Evaluation über /chat gegen den Portfolio-Chat.")
    p.add_argument("--base-url", default="http://localhost:8080", help="z.B. http://localhost:8080")
    p.add_argument("--run-name", required=True, help="Name des Durchlaufs, z.B. 'baseline'.")
    p.add_argument("--out", default="eval_results.csv", help="CSV-Datei, wird fortgeschrieben.")
    p.add_argument("--repetitions", type=int, default=1, help="Wiederholungen pro Frage (Default: 1).")
    p.add_argument("--sentinel", default="system_check", help="Frage, die der Server als Statusabfrage versteht.")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    if not wait_until_ready(args.base_url, args.sentinel):
        raise SystemExit("Backend wurde nicht bereit.")

    out = Path(args.out)
    write_header = not out.exists()
    with out.open("a", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        if write_header:
            writer.writeheader()

        for q_id, q_text in EVAL_QUESTIONS:
            for rep in range(1, args.repetitions + 1):
                print(f"[{args.run_name}] Frage {q_id} (Run {rep}): {q_text}")
                row = {
                    "timestamp": dt.datetime.now().isoformat(timespec="seconds"),
                    "run_name": args.run_name,
                    "question_id": q_id,
                    "question_text": q_text,
                    "repetition": rep,
                }
                row.update(ask(args.base_url, q_text))
                writer.writerow(row)

    print(f"Fertig. Ergebnisse in {out}.")


if __name__ == "__main__":
    main()
