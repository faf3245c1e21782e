"""Notification sinks for newly discovered ads."""

from realty_crawler.notifications.base import Notification
from realty_crawler.notifications.mail import EmailNotification
from realty_crawler.notifications.log import LogNotification

__all__ = ['Notification', 'EmailNotification', 'LogNotification']
