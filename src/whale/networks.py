"""Grouping of containers by the networks they are attached to."""

import logging

from whale.common.models import ContainerIdentity
from whale.sources import ContainerLister

logger = logging.getLogger(__name__)

NO_NETWORK = "(none)"


def group_by_network(containers: list[ContainerIdentity]) -> dict[str, list[ContainerIdentity]]:
    """Group containers by network name.

    A container attached to several networks appears in each group.
    Containers without networks are placed under the "(none)" group. Groups
    are keyed in sorted order and each group is sorted by name,
    case-insensitively.

    Parameters
    ----------
    containers : list[ContainerIdentity]
        Containers to group.

    Returns
    -------
    dict[str, list[ContainerIdentity]]
        Network name to member containers.

    Examples
    --------
    >>> web = ContainerIdentity(id="a1", name="web", networks=["frontend", "backend"])
    >>> db = ContainerIdentity(id="b2", name="db", networks=["backend"])
    >>> groups = group_by_network([web, db])
    >>> {net: [c.name for c in members] for net, members in groups.items()}
    {'backend': ['db', 'web'], 'frontend': ['web']}
    """
    groups: dict[str, list[ContainerIdentity]] = {}
    for container in containers:
        for network in container.networks or [NO_NETWORK]:
            groups.setdefault(network, []).append(container)

    return {
        network: sorted(groups[network], key=lambda c: c.name.lower())
        for network in sorted(groups)
    }


async def collect_networks(
    lister: ContainerLister, include_stopped: bool = False
) -> dict[str, list[ContainerIdentity]]:
    """List containers and group them by network.

    Raises
    ------
    DaemonError
        If listing containers fails.
    """
    containers = await lister.list_containers(all=include_stopped)
    groups = group_by_network(containers)
    logger.debug(f"Grouped {len(containers)} containers into {len(groups)} networks")
    return groups
