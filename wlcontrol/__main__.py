"""Run the wlcontrol terminal front end."""

from .cli import main

main()
