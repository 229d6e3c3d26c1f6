from django import forms

from .documents import BANNER_POSITIONS, PRODUCT_STATUSES, VENDOR_STATUSES, is_valid_pincode
from .orders import PaymentMethod


class PincodesField(forms.Field):
    """
    A list of 6-digit pincodes, given either as a list or as
    "110001, 110002".
    """

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, str):
            value = value.split(",")
        pincodes = []
        for entry in value:
            entry = str(entry).strip()
            if entry and entry not in pincodes:
                pincodes.append(entry)
        return pincodes

    def validate(self, value):
        super().validate(value)
        invalid = [p for p in value if not is_valid_pincode(p)]
        if invalid:
            raise forms.ValidationError(
                f"Invalid pincode format: {', '.join(invalid)}. Must be a 6-digit number"
            )


class PincodeForm(forms.Form):
    pincode = forms.CharField(max_length=6)

    def clean_pincode(self):
        pincode = self.cleaned_data["pincode"].strip()
        if not is_valid_pincode(pincode):
            raise forms.ValidationError("Invalid pincode format. Must be a 6-digit number")
        return pincode


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(max_length=128)


class SignupForm(forms.Form):
    name = forms.CharField(max_length=120)
    email = forms.EmailField()
    phone = forms.CharField(max_length=15)
    password = forms.CharField(min_length=8, max_length=128)


class ProductForm(forms.Form):
    """
    Used by both consoles for adding or editing a product.
    """
    name = forms.CharField(max_length=200)
    description = forms.CharField(max_length=2000)
    price = forms.DecimalField(min_value=0, decimal_places=2)
    mrp = forms.DecimalField(min_value=0, decimal_places=2)
    category = forms.CharField(max_length=100)
    image = forms.URLField(max_length=1000)
    image_path = forms.CharField(max_length=500, required=False)
    image_public_id = forms.CharField(max_length=500, required=False)
    unit = forms.CharField(max_length=50)
    stock = forms.IntegerField(min_value=0, required=False)
    pincodes = PincodesField()
    status = forms.ChoiceField(choices=[(s, s) for s in PRODUCT_STATUSES], required=False)

    def clean(self):
        cleaned = super().clean()
        price, mrp = cleaned.get("price"), cleaned.get("mrp")
        if price is not None and mrp is not None and price > mrp:
            raise forms.ValidationError("Price cannot be higher than MRP")
        return cleaned

    def document(self):
        """cleaned_data shaped for the Products table."""
        data = dict(self.cleaned_data)
        data["price"] = float(data["price"])
        data["mrp"] = float(data["mrp"])
        data["stock"] = data.get("stock") or 0
        data["status"] = data.get("status") or "active"
        return data


class VendorForm(forms.Form):
    name = forms.CharField(max_length=200)
    email = forms.EmailField()
    phone = forms.CharField(max_length=15)
    address = forms.CharField(max_length=500)
    pincodes = PincodesField(required=False)
    status = forms.ChoiceField(choices=[(s, s) for s in VENDOR_STATUSES], required=False)
    delivery_message = forms.CharField(max_length=300, required=False)
    password = forms.CharField(min_length=8, max_length=128, required=False)

    def __init__(self, *args, creating=False, **kwargs):
        super().__init__(*args, **kwargs)
        # A password is only asked for when the vendor is created
        self.fields["password"].required = creating


class VendorProfileForm(forms.Form):
    name = forms.CharField(max_length=200)
    phone = forms.CharField(max_length=15)
    address = forms.CharField(max_length=500)
    delivery_message = forms.CharField(max_length=300, required=False)


class VendorPincodesForm(forms.Form):
    pincodes = PincodesField()

    def __init__(self, *args, allowed=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.allowed = allowed

    def clean_pincodes(self):
        pincodes = self.cleaned_data["pincodes"]
        if self.allowed is not None:
            outside = [p for p in pincodes if p not in self.allowed]
            if outside:
                raise forms.ValidationError(f"Pincodes not serviced by the platform: {', '.join(outside)}")
        return pincodes


class CategoryForm(forms.Form):
    name = forms.CharField(max_length=100)
    description = forms.CharField(max_length=500, required=False)
    image = forms.URLField(max_length=1000, required=False)


class BannerCardForm(forms.Form):
    card_id = forms.CharField(max_length=50, required=False)
    title = forms.CharField(max_length=120)
    image_url = forms.URLField(max_length=1000)
    link = forms.CharField(max_length=300)
    position = forms.ChoiceField(choices=[(p, p) for p in BANNER_POSITIONS])


class CheckoutForm(forms.Form):
    name = forms.CharField(max_length=120)
    phone = forms.RegexField(regex=r"^\d{10}$", error_messages={"invalid": "Enter a 10-digit phone number"})
    address = forms.CharField(max_length=500)
    pincode = forms.CharField(max_length=6)
    city = forms.CharField(max_length=100)
    payment_method = forms.ChoiceField(choices=[(m.value, m.value) for m in PaymentMethod])
    delivery_option = forms.ChoiceField(choices=[("standard", "standard"), ("express", "express")], required=False)

    def clean_pincode(self):
        pincode = self.cleaned_data["pincode"].strip()
        if not is_valid_pincode(pincode):
            raise forms.ValidationError("Invalid pincode format. Must be a 6-digit number")
        return pincode

    def clean_delivery_option(self):
        return self.cleaned_data.get("delivery_option") or "standard"

    def address_document(self):
        data = self.cleaned_data
        return {k: data[k] for k in ("name", "phone", "address", "pincode", "city")}
