"""QuickFix client: accounts, site settings, notifications, support tickets and manual UPI premium payments."""

__version__ = "0.1.0"
