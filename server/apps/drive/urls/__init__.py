"""URL configurations of the drive app."""
