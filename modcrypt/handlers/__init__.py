"""modcrypt.handlers -- holds implementations of the supported password hash schemes"""
