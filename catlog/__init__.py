# -*- coding: utf-8 -*-
"""catlog — daily asthma log for a cat: coughs, medications, soft food and notes."""
