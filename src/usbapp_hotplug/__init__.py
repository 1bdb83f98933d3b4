# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Hotplug integration engine for portable apps on removable storage."""

__version__ = "0.1.0"
