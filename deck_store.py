# deck_store.py
# Deck payloads saved by code in a single JSON file

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Union


class DeckStore:
    def __init__(self, data_file: Union[str, Path]):
        self.data_file = Path(data_file)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, object]:
        if not self.data_file.exists():
            return {}
        with open(self.data_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, code: str, payload: object) -> None:
        with self._lock:
            data = self._read_all()
            data[code] = payload
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self.data_file.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logging.info("Saved deck %s to %s", code, self.data_file)

    def load(self, code: str) -> Optional[object]:
        with self._lock:
            return self._read_all().get(code)

    def exists(self) -> bool:
        return self.data_file.exists()
