"""Packet sequencing, handshake sequence bytes and per-connection ping state."""