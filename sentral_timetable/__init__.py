"""
Sentral portal timetable scraper: extract a day's periods from the daily
timetable page and compare the next school day against the previous one.
"""
__version__ = "0.1.0"
