# SPDX-License-Identifier: MIT
"""Utilities shared by rtdeploy and the commands it generates."""
