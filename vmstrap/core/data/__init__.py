"""Static data — platform table and embedded shell configuration templates."""
