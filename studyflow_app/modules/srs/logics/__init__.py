"""Pure scheduling and due-classification logic for the SRS module."""
