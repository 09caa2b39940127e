"""Appointment booking: validation, conflict detection and availability"""
