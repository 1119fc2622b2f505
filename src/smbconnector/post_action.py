"""Post-Action Executor - what happens to a file after the listener delivered it.

Decision order:
1. outcome FAILURE and apply_post_action_when_failed is False: leave the file
2. auto_delete: delete the file
3. move_to_directory: move the file there (renamed to rename_to if given)
4. otherwise: leave the file

A failing action raises PostActionError; it never retracts the delivery.
"""

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from smbconnector.copy_move import FileCopyMode
from smbconnector.exceptions import (
    ConfigurationError,
    IllegalPathError,
    PostActionError,
    SmbConnectorError,
)
from smbconnector.models import ProcessingOutcome

if TYPE_CHECKING:
    from smbconnector.filesystem import SmbFileSystemConnection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostActionConfig:
    """Post-processing settings for listener deliveries.

    Attributes:
        auto_delete: Delete the file once processed
        move_to_directory: Directory the processed file is moved into
        rename_to: New name of the moved file (requires move_to_directory)
        apply_post_action_when_failed: Also act on files whose processing failed
    """

    auto_delete: bool = False
    move_to_directory: str | None = None
    rename_to: str | None = None
    apply_post_action_when_failed: bool = True

    def validate(self) -> None:
        """Check settings consistency.

        Raises:
            ConfigurationError: rename_to given without move_to_directory
        """
        if self.rename_to and not self.move_to_directory:
            raise ConfigurationError(
                "rename_to was set without move_to_directory. "
                "rename_to is only applied when moving the file."
            )


class PostActionExecutor:
    """Apply a PostActionConfig to processed files."""

    def lock_paths(
        self, connection: "SmbFileSystemConnection", path: str, config: PostActionConfig
    ) -> list[str]:
        """Resolved paths the action for ``path`` may touch.

        The listener holds all of them, acquired together in sorted order,
        while it processes the file. A move target that cannot be resolved
        is left out; the move itself reports it.
        """
        resolver = connection.resolver
        paths = [resolver.resolve(path)]
        if config.move_to_directory and not config.auto_delete:
            name = config.rename_to or PurePosixPath(path).name
            try:
                paths.append(resolver.join(config.move_to_directory, name))
            except IllegalPathError as e:
                logger.debug(f"No lock for the move target of {path}: {e}")
        return paths

    def apply(
        self,
        connection: "SmbFileSystemConnection",
        path: str,
        outcome: ProcessingOutcome,
        config: PostActionConfig,
    ) -> str | None:
        """Apply the configured action to ``path``.

        Args:
            connection: Connection the file was read through
            path: Share-root-relative path of the processed file
            outcome: Result of processing the file
            config: Post-action settings

        Returns:
            Name of the action taken ("delete" or "move"), None if no action

        Raises:
            PostActionError: The delete or move failed
        """
        if outcome == ProcessingOutcome.FAILURE and not config.apply_post_action_when_failed:
            logger.debug(f"Processing of {path} failed; leaving it in place")
            return None

        if config.auto_delete:
            try:
                connection.delete(path)
            except SmbConnectorError as e:
                raise PostActionError(f"Could not delete '{path}' after processing: {e}", path=path) from e
            logger.info(f"Deleted {path} after processing ({outcome.value})")
            return "delete"

        if config.move_to_directory:
            try:
                target = connection.copy_or_move(
                    path,
                    config.move_to_directory,
                    FileCopyMode.MOVE,
                    overwrite=False,
                    create_parent_directories=True,
                    rename_to=config.rename_to,
                )
            except SmbConnectorError as e:
                raise PostActionError(
                    f"Could not move '{path}' to '{config.move_to_directory}' after processing: {e}",
                    path=path,
                ) from e
            logger.info(f"Moved {path} to {target} after processing ({outcome.value})")
            return "move"

        return None


__all__ = ["PostActionConfig", "PostActionExecutor"]
