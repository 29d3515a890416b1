import json
from functools import lru_cache
from pathlib import Path

ABI_DIR = Path(__file__).resolve().parent / "abis"


@lru_cache(maxsize=None)
def read_abi(name: str) -> list:
    with open(ABI_DIR / f"{name}.json", "r") as f:
        return json.load(f)
