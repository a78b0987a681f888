"""
converge - Convergencia declarativa de recursos del host.

Paquetes:
- core: registro, grafo de dependencias, scheduler y reporte (lógica pura)
- providers: adaptadores al sistema operativo (archivos, cuentas, servicios...)
- cli: aplicación Typer
"""

__version__ = "0.1.0"
