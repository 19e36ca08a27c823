"""Live graph tools: read, update and resolve devices, containers and pads."""
