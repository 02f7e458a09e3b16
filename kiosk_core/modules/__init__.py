"""
Модули kiosk_core
"""
