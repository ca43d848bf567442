"""Resources app package.

Bookable resources (chalets and fishing guides) and the establishments that
own chalets. Each resource may be linked to a Google Calendar that its owner
manages directly.
"""
