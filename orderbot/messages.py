# orderbot/messages.py
# Fixed reply texts.
from __future__ import annotations

SAY_MENU = "For a command list please type & send-: menu?\nPlease include the question mark."

REMINDER_GREETING = "Please save your email address, by typing & sending-: update email: example@emailprovider.com"

COLD_GREETING = "Hello there, I don't believe we've met before."

SMARTY_PANTS_GREETING = "Hey there smarty pants, I see you've been here before."

NO_COMMAND_TEXT = "Err:NC, Sorry I couldn't identify a command in your message."

UNHANDLED_COMMAND_TEXT = "Err:CF, Something went wrong processing your request."

UPDATE_ORDER_COMMAND = """update order 1:newAmount, 3:newAmount, 2:newAmount, ...
where 1, 2 or 3 is the item number as listed in the price list - item order not important.

For items with options please use the format-: 1x3, 3x1, 2x2, ...
The first number is the option's hierarchical menu position and the second is your desired amount of that option."""

FULL_ORDER_EXAMPLE = """An order of: 
12 grams of Peanut butter breath, 
3 Blue dream cannisters, 
2 Slurricane cannister,
1 GMO cannisters and 
5 grams of Strawberry cheesecake.

Should look like-: update order 9:12, 10: 1x3, 3x2, 2x1, 6:5"""

PRICE_LIST_PREAMBLE = (
    "Welcome to Flying Rasta,\n\nto save your order please type & send-:"
    + UPDATE_ORDER_COMMAND
    + "\n\n"
    + FULL_ORDER_EXAMPLE
    + " \n\nTo checkout type & send-: checkoutnow?"
)

MAIN_MENU = (
    """Main Menu, command list:

fr.prlist? - Prints the Flying Rasta price list.

menu? - Prints this menu.
userinfo? - Prints your user info.
currentorder? - Prints your current pending order.
checkoutnow? - Prints a payment link for your current basket.

update email: newEmail
update nickname: newNickname
update social: newSocial
update consent: newConsent"""
    + "\n\n"
    + UPDATE_ORDER_COMMAND
)
