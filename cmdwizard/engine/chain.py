"""Chain resolver - hands the rest of a flow to another command's config."""

import logging

from .errors import ChainCycleError
from .session import WizardSession

logger = logging.getLogger(__name__)


class ChainResolver:
    """
    Opens nested sessions for chain references.

    Chains are resolved lazily: a target config is only loaded when the
    user actually picks the option that points at it, and only the path
    walked in this run is checked for cycles.
    """

    def __init__(self, loader):
        """
        Initialize the resolver.

        Args:
            loader: ConfigLoader used to find target configs by name
        """
        self.loader = loader

    def open(self, parent: WizardSession) -> WizardSession:
        """Create the nested session for a parent sitting in CHAINING.

        Args:
            parent: Session whose chain_target should be followed

        Returns:
            A fresh session over the target config

        Raises:
            ChainCycleError: If the target is already on the active chain path
            ConfigNotFoundError: If the target config disappeared since load
            ConfigValidationError: If the target config is malformed
        """
        target = parent.chain_target
        path = parent.chain_path
        if target in path:
            raise ChainCycleError([*path, target])

        config = self.loader.load_named(target)
        logger.debug("Chaining %s -> %s", ' -> '.join(path), target)
        return WizardSession(config, chain_path=(*path, target))

    def splice(self, parent: WizardSession, child: WizardSession) -> None:
        """Attach a finished nested session to its parent."""
        parent.complete_chain(child)
