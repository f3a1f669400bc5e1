"""Provisioning stages of the installer."""
