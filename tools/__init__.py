# SPDX-License-Identifier: Apache-2.0
"""Operator tooling for the durability gate."""
