"""
PixelLedger Assistant - Source Package

The bookkeeping core behind the PixelLedger chat assistant: expense records,
accounts and categories, plus the AI query pipeline that turns a user's
question into a local lookup and a friendly answer.

DESIGN PRINCIPLES:
1. The LLM translates, the ledger answers
2. Every number shown to the user comes from stored records
3. Fail visibly - errors become chat replies, never silent blanks
4. Every step is auditable
5. Storage and LLM providers are swappable
"""

__version__ = "1.0.0"
__author__ = "PixelLedger Team"
