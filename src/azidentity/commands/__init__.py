"""Sub-commands of the ``azidentity`` command line."""
