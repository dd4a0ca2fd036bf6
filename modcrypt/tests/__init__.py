"""modcrypt tests"""
