"""
Inclusión condicional y selectores sobre facts (lógica pura).

Se evalúa una sola vez, antes de construir el grafo: un recurso excluido
simplemente no existe para el resto del core.

    when:
      os_family: RedHat
      os_major: ["7", "8"]
      selinux: "!disabled"

    path:
      select: architecture
      cases:
        x86_64: /usr/lib64/httpd/modules
        default: /usr/lib/httpd/modules
"""

from typing import Any, Iterable, List, Mapping

from converge.core.errors import InvalidAttribute
from converge.core.runtime.facts import Facts


DEFAULT_CASE = "default"


def _same(expected: Any, actual: Any) -> bool:
    if actual is None:
        return False
    return str(expected).strip().lower() == str(actual).strip().lower()


def fact_matches(expected: Any, actual: Any) -> bool:
    """Un valor, una lista (pertenencia) o '!valor' (negación)."""
    if isinstance(expected, (list, tuple, set)):
        return any(fact_matches(item, actual) for item in expected)
    if isinstance(expected, str) and expected.startswith("!"):
        return not _same(expected[1:], actual)
    return _same(expected, actual)


def condition_holds(when: Mapping[str, Any], facts: Facts) -> bool:
    return all(fact_matches(expected, facts.get(name)) for name, expected in when.items())


def select_declarations(declarations: Iterable[Any], facts: Facts) -> List[Any]:
    """facts -> subconjunto de declaraciones cuyo 'when' se cumple (orden preservado)."""
    return [d for d in declarations if condition_holds(getattr(d, "when", None) or {}, facts)]


def is_selector(value: Any) -> bool:
    return isinstance(value, Mapping) and set(value) == {"select", "cases"}


def resolve_selector(resource: Any, field: str, value: Mapping[str, Any], facts: Facts) -> Any:
    """Elige el caso que coincide con el fact; si ninguno, 'default'."""
    fact_name = value["select"]
    cases = value["cases"] or {}
    actual = facts.get(fact_name)
    for case, result in cases.items():
        if str(case) != DEFAULT_CASE and _same(case, actual):
            return result
    if DEFAULT_CASE in cases:
        return cases[DEFAULT_CASE]
    raise InvalidAttribute(
        resource, field, f"ningún caso coincide con el fact '{fact_name}'={actual!r} y no hay 'default'"
    )
