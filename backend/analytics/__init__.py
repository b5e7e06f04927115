"""
analytics — Decision engines for the menu application.

Sub-packages
------------
    analytics.recommendation   Item–item collaborative filtering.
    analytics.forecasting      Holt forecasting, seasonality, trend, inventory.
    analytics.experimentation  A/B/n lifecycle, sticky bucketing, z-tests.
"""
