"""Host-side driver for LAWICEL (CANUSB/CAN232) serial CAN adapters with ISO-TP segmentation."""

__version__ = "0.1.0"
