from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

UNASSOCIATED = "Unassociated"


def associate(programs: Iterable[Any], files: Iterable[Any]) -> list[Any]:
    """Link file records to the program records they belong to.

    A file belongs to the program with the same ``program_id``. Associated files are appended to the
    ``file_entries`` of their program, in the order they are given, with ``application_name`` set to the
    name of the program. All other files are returned with ``application_name`` set to ``Unassociated``.

    Args:
        programs: Program records with a ``program_id``, ``name`` and ``file_entries`` list.
        files: File records with a ``program_id`` and ``application_name``.

    Returns:
        The list of unassociated file records.
    """
    index = {program.program_id: program for program in programs}

    unassociated = []
    for entry in files:
        program = index.get(entry.program_id) if entry.program_id else None

        if program is None:
            unassociated.append(replace(entry, application_name=UNASSOCIATED))
        else:
            program.file_entries.append(replace(entry, application_name=program.name))

    return unassociated
