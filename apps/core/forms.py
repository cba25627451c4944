# apps/core/forms.py

from django import forms

from .models import Tax


class TaxForm(forms.ModelForm):
    """Formulário de alíquota de imposto (nome + percentual 0-100)"""

    rate = forms.FloatField(min_value=0, max_value=100)

    class Meta:
        model = Tax
        fields = ['name', 'rate']
