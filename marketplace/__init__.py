"""Account/commerce core of the barber marketplace."""
