from typing import List, Optional, Sequence

from pick import pick

from depotfetch.download.interfaces import RepositoryEntry
from depotfetch.log_utils import logger


def _option_label(entry: RepositoryEntry) -> str:
    return f"{entry.name} ({entry.strategy.label})"


def select_repositories(
    repositories: Sequence[RepositoryEntry],
) -> Optional[List[RepositoryEntry]]:
    """
    Let the user pick which repositories to try, keeping their configured order.

    Returns:
        The selected entries, or None when nothing was selected.
    """
    if not repositories:
        logger.warning("No repositories configured.")
        return None

    options = [_option_label(entry) for entry in repositories]
    title = """Select the repositories to search (press SPACE to select, ENTER to confirm):
Repositories are tried from top to bottom."""

    selected_options = pick(
        options, title, multiselect=True, min_selection_count=0, indicator="*"
    )

    if not selected_options:
        logger.info("No repositories selected.")
        return None

    selected_indexes = set()
    for option in selected_options:
        # pick returns (option, index) tuples in multiselect mode
        if isinstance(option, (tuple, list)):
            selected_indexes.add(option[1])
        else:
            selected_indexes.add(options.index(str(option)))

    return [entry for i, entry in enumerate(repositories) if i in selected_indexes]
