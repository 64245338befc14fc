# -*- coding: utf-8 -*-
"""Daily logs: one record per day of coughs, medications, soft food and notes.

A day only gets a stored record once something off its defaults is recorded,
and loses it again when every field is back to default.
"""
