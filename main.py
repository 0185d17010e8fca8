"""Entry point de desarrollo (sin instalar el paquete).

Uso:
- `python main.py lookup 5.126.663-3`
- `python main.py scan --start 1000000 --end 1001000`

El código vive en `src/`; este script lo agrega a `sys.path` para que
`cli`, `core` y `adapters` se importen sin `pip install -e .`.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
