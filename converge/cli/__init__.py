"""CLI de converge (Typer + Rich). Punto de entrada: converge.cli.app:main."""
