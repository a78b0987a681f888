"""
Punto de entrada: python -m converge

Misma app que el script de consola `converge`.
"""

from converge.cli.app import main

if __name__ == "__main__":
    main()
