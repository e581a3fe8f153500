"""
Teleport core primitives: errors, canonical hashing, oracle keys,
fixed-point units, access control and the TeleportGUID codec.
"""
