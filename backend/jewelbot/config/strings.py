# /jewelbot/config/strings.py

# This file contains all fixed user-facing strings, making them easy to manage
# and update without changing application logic.

APOLOGY_REPLY = "🙏 Sorry, I'm having trouble answering right now. Please try again in a moment."

NOT_UNDERSTOOD_REPLY = "🙏 Sorry, I didn't understand that. Please ask about a product."

UNSUPPORTED_MESSAGE_REPLY = (
    "🙏 I can only read text messages for now. "
    "Please type what you're looking for, e.g. *gold rings under 20000*."
)

SEARCH_FIRST_REPLY = (
    "There's nothing to continue yet 🙂 Tell me what you're looking for first, "
    "e.g. *diamond earrings* or *necklaces under 50000*."
)

RESULTS_EXHAUSTED_REPLY = (
    "You've seen all the designs from your last search ✨ "
    "Tell me what else you'd like to explore!"
)

NO_PRODUCTS_FOUND_MESSAGE = "No products found matching this query."

CONTINUATION_REPLY = "Here are {count} more designs ✨"

MORE_AVAILABLE_NOTE = "{remaining} more available. Reply *more* to see them."

LIST_COMPLETE_NOTE = "That's the complete list for this search."

PRICE_NOT_AVAILABLE = "Price not available"

DEFAULT_PRODUCT_TITLE = "Jewellery"
