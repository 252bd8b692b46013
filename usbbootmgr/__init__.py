from usbbootmgr.main import main as main
from usbbootmgr.main import update_usb_boot as update_usb_boot
