"""Managers for orchestrating booking workflows."""

from .booking_controller import BookingController, BookingState, ConfirmCallback

__all__ = ['BookingController', 'BookingState', 'ConfirmCallback']
