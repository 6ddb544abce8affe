# donations/forms.py

from django import forms

from .models import ITEM_CATEGORIES, Donation, DonationRejection


class DonationForm(forms.ModelForm):
    """
    Donor intake. Every quantity is optional and defaults to zero; the
    lifecycle service checks that at least one item is present.
    """
    class Meta:
        model = Donation
        fields = [
            *ITEM_CATEGORIES,
            'is_custom_item', 'custom_item_name', 'custom_quantity', 'custom_description',
            'description', 'priority', 'city', 'pickup_address', 'latitude', 'longitude',
        ]
        labels = {
            'grains': 'Grains / food packets',
            'pickup_address': 'Pickup Address',
        }
        widgets = {
            'pickup_address': forms.Textarea(attrs={'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in (*ITEM_CATEGORIES, 'custom_quantity', 'priority', 'city'):
            self.fields[name].required = False

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('is_custom_item') and not cleaned_data.get('custom_item_name'):
            self.add_error('custom_item_name', 'Please name your custom item.')
        return cleaned_data


class RejectionForm(forms.ModelForm):
    class Meta:
        model = DonationRejection
        fields = ['reason']
