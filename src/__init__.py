"""Travel Document Vault.

Stores travel documents (passports, visas, insurance and vaccination
certificates) per owner, normalizing uploaded images, transcribing them
with Tesseract OCR and extracting dates, document numbers and names.
"""
